"""Routed menu Q&A: classify the question, then answer on one of two paths."""

from datetime import datetime
from typing import Any, Callable, Dict, List, Literal, Optional

from ..llm import get_llm, get_prompt
from ..agents import TopicClassifierAgent
from ..utils import get_workflow_logger, log_step, LLMUnavailableError
from .engine import WorkflowEngine
from .menu_recommendation import MENU_INFO
from .state_definitions import MenuQAState, ProcessingStep, create_menu_qa_state

logger = get_workflow_logger("menu_qa")

NO_MENU_RESULTS = "관련 메뉴 정보를 찾을 수 없습니다."
MENU_ERROR_ANSWER = "죄송합니다. 메뉴 정보를 처리하는 중 오류가 발생했습니다."
GENERAL_ERROR_ANSWER = "죄송합니다. 답변을 생성하는 중 오류가 발생했습니다."


def search_menu_info(query: str) -> List[str]:
    """Menu entries named in the query, or all entries for generic menu questions."""
    results = [
        f"{menu}: {info}"
        for menu, info in MENU_INFO.items()
        if menu in query or query in info or "메뉴" in query or "추천" in query
    ]
    return results or [NO_MENU_RESULTS]


class MenuQAWorkflow:
    """
    analyze_input -> router -> (search_menu_info -> generate_menu_response)
                             | generate_general_response

    Args:
        llm: Generator for both answer paths.
        classifier: ``query -> bool`` topic test. Defaults to the LLM
            YES/NO classifier.
    """

    name = "menu_qa"

    def __init__(self, llm=None, classifier: Optional[Callable[[str], bool]] = None):
        self.llm = llm if llm is not None else get_llm()
        self.classifier = classifier or TopicClassifierAgent(self.llm)
        self.engine = (
            WorkflowEngine(self.name, MenuQAState)
            .add_step("analyze_input", self._analyze_input)
            .add_step("search_menu_info", self._search_menu_info)
            .add_step("generate_menu_response", self._generate_menu_response)
            .add_step("generate_general_response", self._generate_general_response)
            .set_entry("analyze_input")
            .add_router("analyze_input", self._route_by_topic, {
                "menu": "search_menu_info",
                "general": "generate_general_response",
            })
            .add_sequence(["search_menu_info", "generate_menu_response"])
            .add_finish("generate_menu_response")
            .add_finish("generate_general_response")
            .compile()
        )
        logger.info("MenuQAWorkflow initialized")

    def _analyze_input(self, state: MenuQAState) -> Dict[str, Any]:
        is_menu_related = bool(self.classifier(state["original_input"]))
        log_step(logger, self.name, "analyze_input", {"menu_related": is_menu_related})
        return {"is_menu_related": is_menu_related, "step": ProcessingStep.INPUT_ANALYSIS}

    @staticmethod
    def _route_by_topic(state: MenuQAState) -> Literal["menu", "general"]:
        return "menu" if state["is_menu_related"] else "general"

    def _search_menu_info(self, state: MenuQAState) -> Dict[str, Any]:
        results = search_menu_info(state["original_input"])
        log_step(logger, self.name, "search_menu_info", {"results": len(results)})
        return {"branch": "menu", "search_results": results, "step": ProcessingStep.MENU_SEARCH}

    def _answer(self, prompt: str, fallback: str) -> Dict[str, Any]:
        try:
            answer, used_fallback = self.llm.generate(prompt), False
        except LLMUnavailableError as e:
            logger.error(f"Response generation failed: {e}")
            answer, used_fallback = fallback, True
        return {
            "answer": answer,
            "used_fallback_answer": used_fallback,
            "step": ProcessingStep.COMPLETED,
            "ended_at": datetime.now(),
        }

    def _generate_menu_response(self, state: MenuQAState) -> Dict[str, Any]:
        prompt = get_prompt("menu_response", "user").format(
            search_results="\n".join(state["search_results"]),
            query=state["original_input"]
        )
        return self._answer(prompt, MENU_ERROR_ANSWER)

    def _generate_general_response(self, state: MenuQAState) -> Dict[str, Any]:
        prompt = get_prompt("general_response", "user").format(query=state["original_input"])
        update = self._answer(prompt, GENERAL_ERROR_ANSWER)
        update["branch"] = "general"
        return update

    def run(self, query: str) -> MenuQAState:
        logger.info(f"Routing query: {query[:100]}")
        return self.engine.run(create_menu_qa_state(query))
