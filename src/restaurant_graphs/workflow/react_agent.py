"""ReAct agent with per-thread conversation memory."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Literal, Optional

from ..agents import ReasonerAgent, extract_intended_action
from ..memory import MemoryStore
from ..messages import Message, ToolCall, last_user_message
from ..tools import ToolRegistry
from ..utils import config, get_workflow_logger, log_step
from .engine import WorkflowEngine
from .state_definitions import ReActState, ReActStep, create_react_state

logger = get_workflow_logger("react_agent")

MAX_ITERATIONS_MESSAGE = "최대 반복 횟수에 도달하여 처리를 완료합니다."


def react_failure_update(state: Dict[str, Any], step_name: str, error: Exception) -> Dict[str, Any]:
    """Error terminal: the exception text goes into the conversation."""
    return {
        "step": ReActStep.ERROR,
        "error_message": str(error),
        "messages": state["messages"] + [Message.system(f"오류가 발생했습니다: {error}")],
        "ended_at": datetime.now(),
    }


class ReActAgentWorkflow:
    """
    reason -> finish
           | act -> observe -> checkpoint -> reason | exhausted

    Each completed act/observe cycle is checkpointed to ``memory`` before
    the next reasoning step.
    """

    name = "react_agent"

    def __init__(
        self,
        registry: ToolRegistry,
        llm=None,
        reasoner: Optional[ReasonerAgent] = None,
        memory: Optional[MemoryStore] = None,
        max_iterations: Optional[int] = None
    ):
        self.registry = registry
        self.reasoner = reasoner or ReasonerAgent(llm)
        self.max_iterations = (
            max_iterations if max_iterations is not None else config.react.max_iterations
        )
        self.memory = memory or MemoryStore(
            lambda key: create_react_state(key, self.max_iterations), name="react_threads"
        )

        self.engine = (
            WorkflowEngine(
                self.name, ReActState,
                on_error=react_failure_update,
                recursion_limit=4 * self.max_iterations + 5,
            )
            .add_step("reason", self._reason)
            .add_step("act", self._act)
            .add_step("observe", self._observe)
            .add_step("checkpoint", self._checkpoint)
            .add_step("finish", self._finish)
            .add_step("exhausted", self._exhausted)
            .set_entry("reason")
            .add_router("reason", self._needs_action, {
                "act": "act",
                "finish": "finish",
            })
            .add_sequence(["act", "observe", "checkpoint"])
            .add_router("checkpoint", self._should_continue, {
                "reason": "reason",
                "exhausted": "exhausted",
            })
            .add_finish("finish")
            .add_finish("exhausted")
            .compile()
        )
        logger.info(f"ReActAgentWorkflow initialized with tools: {', '.join(registry.names())}")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _reason(self, state: ReActState) -> Dict[str, Any]:
        iteration = state["iteration"] + 1
        text = self.reasoner.reason(state["messages"], iteration)

        fallback_query = last_user_message(state["messages"]) or state["original_input"] or ""
        action = extract_intended_action(text, self.registry.names(), fallback_query)

        log_step(logger, self.name, "reason", {
            "iteration": iteration,
            "action": action.tool_name if action else None,
        })
        return {
            "iteration": iteration,
            "last_reasoning": text,
            "pending_action": action,
            "messages": state["messages"] + [Message.assistant(text)],
            "step": ReActStep.REASONING,
        }

    @staticmethod
    def _needs_action(state: ReActState) -> Literal["act", "finish"]:
        return "act" if state["pending_action"] is not None else "finish"

    def _act(self, state: ReActState) -> Dict[str, Any]:
        action = state["pending_action"]
        call = self.registry.execute(
            ToolCall(tool_name=action.tool_name, parameters={"query": action.query})
        )
        return {
            "tool_calls": state["tool_calls"] + [call],
            "messages": state["messages"] + [Message.tool_call(call.tool_name, call.parameters)],
            "pending_action": None,
            "step": ReActStep.ACTING,
        }

    def _observe(self, state: ReActState) -> Dict[str, Any]:
        call = state["tool_calls"][-1]
        content = call.result if call.result is not None else f"도구 실행 중 오류: {call.error_message}"
        observation = (
            f"도구 실행 결과:\n도구: {call.tool_name}\n결과: {content}\n상태: {call.status.value}"
        )
        return {
            "observations": state["observations"] + [observation],
            "messages": state["messages"] + [
                Message.tool_result(content, self.registry.source_of(call.tool_name))
            ],
            "step": ReActStep.OBSERVING,
        }

    def _checkpoint(self, state: ReActState) -> Dict[str, Any]:
        snapshot = dict(state)
        snapshot["step"] = ReActStep.CHECKPOINTING
        checkpoint_id = self.memory.save(snapshot)
        log_step(logger, self.name, "checkpoint", {
            "iteration": state["iteration"], "checkpoint_id": checkpoint_id
        })
        return {"last_checkpoint_id": checkpoint_id, "step": ReActStep.CHECKPOINTING}

    @staticmethod
    def _should_continue(state: ReActState) -> Literal["reason", "exhausted"]:
        return "exhausted" if state["iteration"] >= state["max_iterations"] else "reason"

    def _finish(self, state: ReActState) -> Dict[str, Any]:
        return {
            "answer": state["last_reasoning"],
            "step": ReActStep.COMPLETED,
            "ended_at": datetime.now(),
        }

    def _exhausted(self, state: ReActState) -> Dict[str, Any]:
        logger.warning(f"Max iterations ({state['max_iterations']}) reached")
        return {
            "answer": MAX_ITERATIONS_MESSAGE,
            "messages": state["messages"] + [Message.system(MAX_ITERATIONS_MESSAGE)],
            "step": ReActStep.MAX_ITERATIONS_REACHED,
            "ended_at": datetime.now(),
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, query: str, thread_id: Optional[str] = None) -> ReActState:
        """
        Run one user turn on ``thread_id``.

        The thread's earlier messages and tool calls are carried over; the
        per-turn fields start fresh. The terminal state is saved back to
        memory.
        """
        thread_id = thread_id or self.memory.create_session("thread")
        logger.info(f"ReAct turn on {thread_id}: {query[:100]}")

        state = self.memory.get(thread_id)
        state.update({
            "session_key": thread_id,
            "original_input": query,
            "messages": state["messages"] + [Message.user(query)],
            "observations": [],
            "iteration": 0,
            "max_iterations": self.max_iterations,
            "last_reasoning": None,
            "pending_action": None,
            "answer": None,
            "step": ReActStep.STARTED,
            "error_message": None,
            "started_at": datetime.now(),
            "ended_at": None,
        })

        final_state = self.engine.run(state)
        final_state["last_checkpoint_id"] = self.memory.save(final_state)

        logger.info(
            f"ReAct turn finished: step={final_state['step']}, "
            f"iterations={final_state['iteration']}, tool_calls={len(final_state['tool_calls'])}"
        )
        return final_state

    def get_conversation(self, thread_id: str) -> List[Message]:
        if not self.memory.exists(thread_id):
            return []
        return self.memory.get(thread_id)["messages"]

    def delete_thread(self, thread_id: str) -> bool:
        return self.memory.delete(thread_id)

    def cleanup(self, hours: Optional[int] = None) -> Dict[str, int]:
        """Evict threads idle for longer than ``hours`` (default: configured retention)."""
        hours = hours if hours is not None else config.memory.retention_hours
        return self.memory.evict_older_than(timedelta(hours=hours))
