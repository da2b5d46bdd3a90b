"""Tool-calling agent: the model picks tools through function calling."""

import json
import threading
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from ..llm import get_llm, get_prompt, RequestedToolCall
from ..messages import ToolCall
from ..tools import ToolRegistry
from ..utils import config, get_workflow_logger, log_step, LLMUnavailableError
from .engine import WorkflowEngine
from .state_definitions import ProcessingStep, ToolCallingState, create_tool_calling_state

logger = get_workflow_logger("tool_calling")

ERROR_ANSWER = "죄송합니다. 요청을 처리하는 중 오류가 발생했습니다."
NO_TOOL_MATCH_ANSWER = "질문에 맞는 도구를 찾지 못했습니다. 메뉴, 와인 또는 음식 정보에 대해 질문해 주세요."

# (tool name, trigger keywords, section header), in dispatch order
KEYWORD_ROUTES: Tuple[Tuple[str, Tuple[str, ...], str], ...] = (
    ("search_menu", ("스테이크", "메뉴", "음식"), "메뉴 검색 결과"),
    ("search_wine", ("와인", "술", "페어링"), "와인 검색 결과"),
    ("search_web", ("최신", "정보"), "웹 검색 결과"),
    ("search_wikipedia", ("정보", "설명"), "Wikipedia 검색 결과"),
)


def assistant_tool_message(content: str, calls: List[RequestedToolCall]) -> Dict[str, Any]:
    """OpenAI-format assistant message carrying the requested calls."""
    return {
        "role": "assistant",
        "content": content or None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {
                    "name": call.name,
                    "arguments": json.dumps(call.arguments, ensure_ascii=False),
                },
            }
            for call in calls
        ],
    }


def format_tool_results(calls: List[ToolCall]) -> str:
    sections = []
    for call in calls:
        body = call.result if call.result is not None else f"오류: {call.error_message}"
        sections.append(f"[{call.tool_name}] {body}")
    return "\n\n".join(sections)


class ToolCallingWorkflow:
    """
    call_model -> run_tools -> call_model ... -> finish

    The model sees every registered tool's JSON schema. When the model is
    unreachable the query is dispatched to tools by keyword instead.
    """

    name = "tool_calling"

    def __init__(
        self,
        registry: ToolRegistry,
        llm=None,
        max_rounds: Optional[int] = None,
        history_lines: Optional[int] = None
    ):
        self.registry = registry
        self.llm = llm if llm is not None else get_llm()
        self.max_rounds = max_rounds if max_rounds is not None else config.tool_calling.max_rounds
        self.history_lines = (
            history_lines if history_lines is not None else config.tool_calling.history_lines
        )
        self._history: List[str] = []
        self._history_lock = threading.Lock()

        self.engine = (
            WorkflowEngine(self.name, ToolCallingState, recursion_limit=2 * self.max_rounds + 5)
            .add_step("call_model", self._call_model)
            .add_step("run_tools", self._run_tools)
            .add_step("finish", self._finish)
            .set_entry("call_model")
            .add_router("call_model", self._has_pending_calls, {
                "tools": "run_tools",
                "finish": "finish",
            })
            .add_sequence(["run_tools", "call_model"])
            .add_finish("finish")
            .compile()
        )
        logger.info(f"ToolCallingWorkflow initialized with tools: {', '.join(registry.names())}")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _call_model(self, state: ToolCallingState) -> Dict[str, Any]:
        try:
            reply = self.llm.chat(state["chat_messages"], tools=self.registry.schemas())
        except LLMUnavailableError as e:
            logger.error(f"Model unavailable, dispatching by keyword: {e}")
            return self._fallback_update(state)

        if reply.tool_calls and state["rounds"] < state["max_rounds"]:
            log_step(logger, self.name, "call_model", {
                "requested": [call.name for call in reply.tool_calls]
            })
            return {
                "chat_messages": state["chat_messages"] + [
                    assistant_tool_message(reply.content, reply.tool_calls)
                ],
                "pending_calls": list(reply.tool_calls),
                "step": ProcessingStep.TOOL_EXECUTION,
            }

        if reply.tool_calls:
            logger.warning(f"Tool round limit ({state['max_rounds']}) reached, ignoring further calls")

        answer = reply.content or format_tool_results(state["tool_calls"])
        return {
            "chat_messages": state["chat_messages"] + [{"role": "assistant", "content": answer}],
            "pending_calls": [],
            "answer": answer,
            "step": ProcessingStep.ANSWER_GENERATION,
        }

    def _fallback_update(self, state: ToolCallingState) -> Dict[str, Any]:
        if state["tool_calls"]:
            return {
                "pending_calls": [],
                "answer": format_tool_results(state["tool_calls"]),
                "step": ProcessingStep.ANSWER_GENERATION,
            }
        answer, calls = self.dispatch_by_keyword(state["original_input"])
        return {
            "pending_calls": [],
            "tool_calls": state["tool_calls"] + calls,
            "answer": answer,
            "step": ProcessingStep.ANSWER_GENERATION,
        }

    @staticmethod
    def _has_pending_calls(state: ToolCallingState) -> Literal["tools", "finish"]:
        return "tools" if state["pending_calls"] else "finish"

    def _run_tools(self, state: ToolCallingState) -> Dict[str, Any]:
        executed = []
        messages = list(state["chat_messages"])
        for requested in state["pending_calls"]:
            call = self.registry.execute(ToolCall(
                tool_name=requested.name,
                parameters=dict(requested.arguments),
                id=requested.id,
            ))
            executed.append(call)
            messages.append({
                "role": "tool",
                "tool_call_id": requested.id,
                "content": call.result if call.result is not None else f"오류: {call.error_message}",
            })

        log_step(logger, self.name, "run_tools", {
            "round": state["rounds"] + 1, "calls": [c.tool_name for c in executed]
        })
        return {
            "chat_messages": messages,
            "tool_calls": state["tool_calls"] + executed,
            "pending_calls": [],
            "rounds": state["rounds"] + 1,
            "step": ProcessingStep.TOOL_EXECUTION,
        }

    def _finish(self, state: ToolCallingState) -> Dict[str, Any]:
        return {
            "answer": state["answer"] or NO_TOOL_MATCH_ANSWER,
            "step": ProcessingStep.COMPLETED,
            "ended_at": datetime.now(),
        }

    # ------------------------------------------------------------------
    # Keyword dispatch
    # ------------------------------------------------------------------

    def dispatch_by_keyword(self, query: str) -> Tuple[str, List[ToolCall]]:
        """Call every registered tool whose trigger keywords occur in ``query``."""
        sections, calls = [], []
        for tool_name, keywords, header in KEYWORD_ROUTES:
            if tool_name not in self.registry or not any(k in query for k in keywords):
                continue
            call = self.registry.execute(ToolCall(tool_name=tool_name, parameters={"query": query}))
            calls.append(call)
            body = call.result if call.result is not None else f"오류: {call.error_message}"
            sections.append(f"{header}:\n{body}")

        if not sections:
            return NO_TOOL_MATCH_ANSWER, calls
        return "\n\n".join(sections), calls

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run_state(self, query: str, system_prompt: Optional[str] = None) -> ToolCallingState:
        logger.info(f"Tool calling query: {query[:100]}")
        return self.engine.run(create_tool_calling_state(
            query,
            system_prompt or get_prompt("tool_calling", "system"),
            max_rounds=self.max_rounds,
        ))

    def run(self, query: str, system_prompt: Optional[str] = None) -> str:
        """Answer ``query`` using the tools. Never raises."""
        state = self.run_state(query, system_prompt)
        if state.get("error_message"):
            return f"{ERROR_ANSWER} ({state['error_message']})"
        return state["answer"]

    def process_with_few_shot(self, query: str) -> str:
        return self.run(query, get_prompt("tool_calling", "few_shot"))

    def process_with_memory(self, query: str) -> str:
        """
        Answer with the recent conversation in the system prompt.

        Keeps the last ``history_lines`` lines, shared by every caller of
        this workflow instance.
        """
        with self._history_lock:
            self._history.append(f"사용자: {query}")
            self._history = self._history[-self.history_lines:]
            history = "\n".join(self._history)

        answer = self.run(query, get_prompt("tool_calling", "memory").format(history=history))

        with self._history_lock:
            self._history.append(f"AI: {answer}")
            self._history = self._history[-self.history_lines:]
        return answer

    def history(self) -> List[str]:
        with self._history_lock:
            return list(self._history)
