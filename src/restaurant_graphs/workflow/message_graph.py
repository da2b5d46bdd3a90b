"""Message-log quality loop: retrieve restaurant snippets, answer, grade, retry."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from ..agents import QualityEvaluatorAgent
from ..llm import get_llm, get_prompt
from ..messages import Message, MessageRole
from ..tools import BaseTool, MenuSearchTool, WineSearchTool, NOT_FOUND_MARKER
from ..utils import config, get_workflow_logger, log_step, LLMUnavailableError
from .agentic_rag import EXHAUSTED_REASON
from .engine import WorkflowEngine
from .state_definitions import MessageGraphState, ProcessingStep, create_message_graph_state

logger = get_workflow_logger("message_graph")

NO_CONTEXT = "관련 정보를 찾을 수 없습니다."
GENERATION_ERROR_ANSWER = "죄송합니다. 응답 생성 중 오류가 발생했습니다."


def _last_assistant(messages: List[Message]) -> Optional[str]:
    for message in reversed(messages):
        if message.role == MessageRole.ASSISTANT:
            return message.content
    return None


class MessageGraphWorkflow:
    """
    retrieve -> generate -> grade -> accept | exhausted | generate

    Best-effort by default: an exhausted run is COMPLETED with its last
    answer.
    """

    name = "message_graph"

    def __init__(
        self,
        llm=None,
        evaluator: Optional[QualityEvaluatorAgent] = None,
        menu_tool: Optional[BaseTool] = None,
        wine_tool: Optional[BaseTool] = None,
        max_attempts: Optional[int] = None,
        quality_threshold: Optional[float] = None
    ):
        self.llm = llm if llm is not None else get_llm()
        self.evaluator = evaluator or QualityEvaluatorAgent(self.llm)
        self.menu_tool = menu_tool or MenuSearchTool()
        self.wine_tool = wine_tool or WineSearchTool()
        self.max_attempts = max_attempts if max_attempts is not None else config.quality.max_attempts
        self.quality_threshold = (
            quality_threshold if quality_threshold is not None else config.quality.quality_threshold
        )

        self.engine = (
            WorkflowEngine(self.name, MessageGraphState, recursion_limit=2 * self.max_attempts + 5)
            .add_step("retrieve", self._retrieve)
            .add_step("generate", self._generate)
            .add_step("grade", self._grade)
            .add_step("accept", self._accept)
            .add_step("exhausted", self._exhausted)
            .set_entry("retrieve")
            .add_router("retrieve", self._should_generate, {
                "generate": "generate",
                "exhausted": "exhausted",
            })
            .add_sequence(["generate", "grade"])
            .add_router("grade", self._grade_decision, {
                "accept": "accept",
                "exhausted": "exhausted",
                "retry": "generate",
            })
            .add_finish("accept")
            .add_finish("exhausted")
            .compile()
        )
        logger.info("MessageGraphWorkflow initialized")

    def _retrieve(self, state: MessageGraphState) -> Dict[str, Any]:
        query = state["original_input"]
        documents = []

        menu = self.menu_tool.run(query)
        if NOT_FOUND_MARKER not in menu:
            documents.append(f"메뉴 정보: {menu}")

        wine = self.wine_tool.run(query)
        if NOT_FOUND_MARKER not in wine:
            documents.append(f"와인 정보: {wine}")

        documents = documents or [NO_CONTEXT]
        log_step(logger, self.name, "retrieve", {"documents": len(documents)})
        return {"documents": documents, "step": ProcessingStep.DOCUMENT_RETRIEVAL}

    @staticmethod
    def _should_generate(state: MessageGraphState) -> Literal["generate", "exhausted"]:
        return "exhausted" if state["attempts"] >= state["max_attempts"] else "generate"

    def _generate(self, state: MessageGraphState) -> Dict[str, Any]:
        prompt = get_prompt("message_graph", "user").format(
            context="\n\n".join(state["documents"]),
            query=state["original_input"]
        )
        try:
            answer = self.llm.generate(prompt)
        except LLMUnavailableError as e:
            logger.error(f"Response generation failed: {e}")
            answer = GENERATION_ERROR_ANSWER

        attempts = state["attempts"] + 1
        log_step(logger, self.name, "generate", {"attempt": attempts})
        return {
            "answer": answer,
            "messages": state["messages"] + [Message.assistant(answer)],
            "attempts": attempts,
            "step": ProcessingStep.ANSWER_GENERATION,
        }

    def _grade(self, state: MessageGraphState) -> Dict[str, Any]:
        grade = self.evaluator.evaluate(
            state["original_input"],
            _last_assistant(state["messages"]) or "",
            "\n".join(state["documents"])
        )
        log_step(logger, self.name, "grade", {"attempt": state["attempts"], "score": grade.score})
        return {
            "quality_score": grade.score,
            "quality_explanation": grade.explanation,
            "step": ProcessingStep.QUALITY_EVALUATION,
        }

    @staticmethod
    def _grade_decision(state: MessageGraphState) -> Literal["accept", "exhausted", "retry"]:
        if state["quality_score"] >= state["quality_threshold"]:
            return "accept"
        if state["attempts"] >= state["max_attempts"]:
            return "exhausted"
        logger.info(
            f"Low quality answer (score {state['quality_score']:.2f}), "
            f"retrying after attempt {state['attempts']}"
        )
        return "retry"

    def _accept(self, state: MessageGraphState) -> Dict[str, Any]:
        return {"step": ProcessingStep.COMPLETED, "ended_at": datetime.now()}

    def _exhausted(self, state: MessageGraphState) -> Dict[str, Any]:
        completed = state["best_effort"] and state["quality_score"] is not None
        return {
            "failure_reason": EXHAUSTED_REASON,
            "step": ProcessingStep.COMPLETED if completed else ProcessingStep.FAILED,
            "ended_at": datetime.now(),
        }

    def run(self, query: str, best_effort: bool = True) -> MessageGraphState:
        logger.info(f"Message graph query: {query[:100]}")
        return self.engine.run(create_message_graph_state(
            query,
            max_attempts=self.max_attempts,
            quality_threshold=self.quality_threshold,
            best_effort=best_effort,
        ))
