"""
Service facade: one entry point per workflow.

Entry points never raise. Every call returns a ``WorkflowResult`` with a
success flag and, on failure, a human-readable reason.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from .agents import QualityEvaluatorAgent
from .llm import get_llm
from .retrieval import DocumentStore, create_document_store
from .tools import ToolRegistry, create_default_registry
from .utils import (
    config, get_logger, metrics_collector, InvalidInputError, RestaurantGraphError,
)
from .workflow import (
    MenuRecommendationWorkflow, MenuQAWorkflow, QualityGatedRAGWorkflow,
    MessageGraphWorkflow, ReActAgentWorkflow, ToolCallingWorkflow,
    ProcessingStep, ReActStep,
)

logger = get_logger("service")

REACT_TOOLS = ("search_menu", "search_wine", "search_web")

_SUCCESS_STEPS = {ProcessingStep.COMPLETED, ReActStep.COMPLETED, ReActStep.MAX_ITERATIONS_REACHED}


@dataclass
class WorkflowResult:
    success: bool
    workflow: str
    state: Optional[Dict[str, Any]] = None
    answer: Optional[str] = None
    reason: Optional[str] = None
    duration_seconds: float = 0.0
    valid_values: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "workflow": self.workflow,
            "answer": self.answer,
            "reason": self.reason,
            "duration_seconds": self.duration_seconds,
            "valid_values": list(self.valid_values),
        }


class RestaurantGraphService:
    """
    Builds every workflow over shared collaborators.

    Args:
        llm: Model used by all agents. Defaults to the global wrapper.
        store: Document store for the RAG workflow.
        registry: Tools for the tool-calling agent; the ReAct agent uses
            the menu, wine and web tools from it.
        topic_classifier: Optional ``query -> bool`` for the routed Q&A.
        evaluator: Optional shared quality evaluator.
        seed: Seed for the linear recommendation's preference pick.
    """

    def __init__(
        self,
        llm=None,
        store: Optional[DocumentStore] = None,
        registry: Optional[ToolRegistry] = None,
        topic_classifier: Optional[Callable[[str], bool]] = None,
        evaluator: Optional[QualityEvaluatorAgent] = None,
        seed: Optional[int] = None
    ):
        self.llm = llm if llm is not None else get_llm()
        self.store = store if store is not None else create_document_store()
        self.registry = registry if registry is not None else create_default_registry(llm=self.llm)
        evaluator = evaluator or QualityEvaluatorAgent(self.llm)

        react_registry = ToolRegistry(
            [self.registry.get(name) for name in REACT_TOOLS if name in self.registry]
        )

        self.linear = MenuRecommendationWorkflow(seed=seed)
        self.routed = MenuQAWorkflow(self.llm, classifier=topic_classifier)
        self.rag = QualityGatedRAGWorkflow(self.store, self.llm, evaluator=evaluator)
        self.message_graph = MessageGraphWorkflow(
            self.llm,
            evaluator=evaluator,
            menu_tool=self.registry.get("search_menu"),
            wine_tool=self.registry.get("search_wine"),
        )
        self.react = ReActAgentWorkflow(react_registry, self.llm)
        self.tool_calling = ToolCallingWorkflow(self.registry, self.llm)
        logger.info(f"RestaurantGraphService ready with {self.store.count()} documents")

    # ------------------------------------------------------------------
    # Run bookkeeping
    # ------------------------------------------------------------------

    @staticmethod
    def _reject(workflow: str, error: InvalidInputError) -> WorkflowResult:
        logger.warning(f"[{workflow}] rejected input: {error.message}")
        return WorkflowResult(
            success=False,
            workflow=workflow,
            reason=error.message,
            valid_values=list(error.valid_values),
        )

    @staticmethod
    def _require_query(query: Optional[str]) -> str:
        if query is None or not query.strip():
            raise InvalidInputError("query must not be empty")
        return query.strip()

    def _execute(self, workflow: str, query: str, runner: Callable[[], Dict[str, Any]]) -> WorkflowResult:
        run = metrics_collector.start_run(uuid.uuid4().hex[:12], workflow, query)
        started = time.perf_counter()

        try:
            state = runner()
        except Exception as e:
            logger.error(f"[{workflow}] run failed: {e}")
            run.error_message = str(e)
            metrics_collector.complete_run(run, success=False)
            return WorkflowResult(
                success=False,
                workflow=workflow,
                reason=str(e),
                duration_seconds=time.perf_counter() - started,
            )

        success = state.get("step") in _SUCCESS_STEPS
        reason = None if success else (
            state.get("error_message") or state.get("failure_reason") or f"ended at {state.get('step')}"
        )

        run.attempts = state.get("attempts", state.get("iteration", 0))
        run.quality_score = state.get("quality_score")
        run.tool_calls = len(state.get("tool_calls", []))
        run.error_message = state.get("error_message")
        metrics_collector.complete_run(run, success=success)

        return WorkflowResult(
            success=success,
            workflow=workflow,
            state=state,
            answer=state.get("answer") or state.get("menu_info"),
            reason=reason,
            duration_seconds=time.perf_counter() - started,
        )

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def run_linear(self) -> WorkflowResult:
        return self._execute("menu_recommendation", "", self.linear.run)

    def run_routed(self, query: str) -> WorkflowResult:
        try:
            query = self._require_query(query)
        except InvalidInputError as e:
            return self._reject("menu_qa", e)
        return self._execute("menu_qa", query, lambda: self.routed.run(query))

    def run_quality_gated_rag(
        self,
        query: str,
        session_id: Optional[str] = None,
        best_effort: Optional[bool] = None
    ) -> WorkflowResult:
        try:
            query = self._require_query(query)
        except InvalidInputError as e:
            return self._reject("agentic_rag", e)
        return self._execute(
            "agentic_rag", query, lambda: self.rag.run(query, session_id, best_effort)
        )

    def run_message_graph(self, query: str) -> WorkflowResult:
        try:
            query = self._require_query(query)
        except InvalidInputError as e:
            return self._reject("message_graph", e)
        return self._execute("message_graph", query, lambda: self.message_graph.run(query))

    def run_react(self, query: str, thread_id: Optional[str] = None) -> WorkflowResult:
        try:
            query = self._require_query(query)
        except InvalidInputError as e:
            return self._reject("react_agent", e)
        return self._execute("react_agent", query, lambda: self.react.run(query, thread_id))

    def run_tool_calling(self, query: str) -> str:
        """Answer text from the tool-calling agent; failures come back as text."""
        try:
            query = self._require_query(query)
        except InvalidInputError as e:
            return f"입력 오류: {e.message}"
        result = self._execute("tool_calling", query, lambda: self.tool_calling.run_state(query))
        if result.success:
            return result.answer
        return f"죄송합니다. 요청을 처리하는 중 오류가 발생했습니다: {result.reason}"

    def run_tool_calling_with_memory(self, query: str) -> str:
        try:
            query = self._require_query(query)
        except InvalidInputError as e:
            return f"입력 오류: {e.message}"
        return self.tool_calling.process_with_memory(query)

    def run_tool_calling_few_shot(self, query: str) -> str:
        try:
            query = self._require_query(query)
        except InvalidInputError as e:
            return f"입력 오류: {e.message}"
        return self.tool_calling.process_with_few_shot(query)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def search_documents(self, query: str, max_results: Optional[int] = None) -> WorkflowResult:
        try:
            query = self._require_query(query)
        except InvalidInputError as e:
            return self._reject("search", e)
        documents = self.store.search(query, max_results)
        return WorkflowResult(
            success=True, workflow="search", state={"documents": documents}
        )

    def search_by_type(
        self,
        query: str,
        doc_type: str,
        max_results: Optional[int] = None
    ) -> WorkflowResult:
        try:
            query = self._require_query(query)
            documents = self.store.search_by_type(query, doc_type, max_results)
        except InvalidInputError as e:
            return self._reject("search_by_type", e)
        return WorkflowResult(
            success=True, workflow="search_by_type", state={"documents": documents}
        )

    def find_similar(self, document_id: str, max_results: int = 5) -> WorkflowResult:
        if self.store.get_document(document_id) is None:
            return WorkflowResult(
                success=False, workflow="find_similar", reason=f"Unknown document: {document_id}"
            )
        documents = self.store.find_similar(document_id, max_results)
        return WorkflowResult(
            success=True, workflow="find_similar", state={"documents": documents}
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def get_conversation(self, thread_id: str):
        return self.react.get_conversation(thread_id)

    def delete_thread(self, thread_id: str) -> bool:
        return self.react.delete_thread(thread_id)

    def cleanup_memory(self, hours: Optional[int] = None) -> Dict[str, Dict[str, int]]:
        """Evict RAG sessions and ReAct threads idle longer than ``hours``."""
        hours = hours if hours is not None else config.memory.retention_hours
        age = timedelta(hours=hours)
        return {
            "rag": self.rag.memory.evict_older_than(age),
            "react": self.react.memory.evict_older_than(age),
        }

    def available_tools(self) -> List[Dict[str, str]]:
        return [
            {"name": name, "description": self.registry.get(name).description}
            for name in self.registry.names()
        ]

    def status(self) -> Dict[str, Any]:
        return {
            "documents": self.store.count(),
            "documents_by_type": {t.value: n for t, n in self.store.count_by_type().items()},
            "index": self.store.index_status(),
            "tools": self.registry.names(),
            "memory": {
                "rag": self.rag.memory.status(),
                "react": self.react.memory.status(),
            },
            "metrics": metrics_collector.get_system_stats(),
        }


def create_service(
    llm=None,
    data_dir=None,
    web_client=None,
    wiki_client=None,
    tavily_api_key: Optional[str] = None,
    **kwargs
) -> RestaurantGraphService:
    """Create a service over the bundled restaurant data."""
    llm = llm if llm is not None else get_llm()
    try:
        store = create_document_store(data_dir)
    except OSError as e:
        raise RestaurantGraphError(f"Could not load restaurant data: {e}", code="DATA_LOAD_ERROR")
    registry = create_default_registry(
        llm=llm,
        data_dir=data_dir,
        web_client=web_client,
        wiki_client=wiki_client,
        tavily_api_key=tavily_api_key,
    )
    return RestaurantGraphService(llm=llm, store=store, registry=registry, **kwargs)
