"""Quality-gated RAG workflow with a self-corrective retry loop."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from ..agents import AnswerGeneratorAgent, QualityEvaluatorAgent, QueryRewriterAgent
from ..llm import format_documents_for_prompt
from ..memory import MemoryStore
from ..messages import Message
from ..retrieval import Document, DocumentStore
from ..utils import config, get_workflow_logger, log_step
from .engine import WorkflowEngine, failure_update
from .state_definitions import RAGState, ProcessingStep, create_rag_state, state_summary

logger = get_workflow_logger("agentic_rag")

EXHAUSTED_REASON = "max attempts reached, quality threshold not met"

_EXPANSIONS = (
    ("와인", " 페어링 추천"),
    ("메뉴", " 인기 음식"),
    ("가격", " 비용 정보"),
)
_DEFAULT_EXPANSION = " 추천 정보"


def expand_query(original: str) -> str:
    """Deterministic expansion of the original query for the retry search."""
    for keyword, suffix in _EXPANSIONS:
        if keyword in original:
            return original + suffix
    return original + _DEFAULT_EXPANSION


def merge_documents(existing: List[Document], incoming: List[Document]) -> List[Document]:
    """Append documents whose id is not already present, keeping order."""
    seen = {doc.id for doc in existing}
    merged = list(existing)
    for doc in incoming:
        if doc.id not in seen:
            seen.add(doc.id)
            merged.append(doc)
    return merged


def select_relevant(
    documents: List[Document],
    min_score: float,
    top_k: int
) -> List[Document]:
    """Documents scoring above ``min_score``, best first, ties in input order."""
    scored = [doc for doc in documents if doc.relevance_score > min_score]
    scored.sort(key=lambda doc: -doc.relevance_score)
    return scored[:top_k]


class QualityGatedRAGWorkflow:
    """
    analyze_query -> retrieve_documents -> filter_relevant
        -> generate_answer -> evaluate_quality
        -> accept | exhausted | improve_query -> filter_relevant -> ...

    Generation happens only while ``attempts < max_attempts``, so the
    generator is called at most ``max_attempts`` times per run.

    Args:
        store: Document store to retrieve from.
        llm: Model shared by the default agents.
        evaluator: Answer grader. Defaults to ``QualityEvaluatorAgent``.
        generator: Answer writer. Defaults to ``AnswerGeneratorAgent``.
        rewriter: Query rewriter. Defaults to the rule-based rewriter
            refined by ``llm``.
        memory: Session store the final state is saved to.
        max_attempts: Cap on generations per run.
        quality_threshold: Score at or above which an answer is accepted.
        best_effort: Report an exhausted run as COMPLETED with the best
            answer seen instead of FAILED.
    """

    name = "agentic_rag"

    def __init__(
        self,
        store: DocumentStore,
        llm=None,
        evaluator: Optional[QualityEvaluatorAgent] = None,
        generator: Optional[AnswerGeneratorAgent] = None,
        rewriter: Optional[QueryRewriterAgent] = None,
        memory: Optional[MemoryStore] = None,
        max_attempts: Optional[int] = None,
        quality_threshold: Optional[float] = None,
        best_effort: Optional[bool] = None
    ):
        self.store = store
        self.evaluator = evaluator or QualityEvaluatorAgent(llm)
        self.generator = generator or AnswerGeneratorAgent(llm)
        self.rewriter = rewriter or QueryRewriterAgent(llm)
        self.memory = memory or MemoryStore(
            lambda key: create_rag_state("", session_key=key), name="rag_sessions"
        )
        self.max_attempts = max_attempts if max_attempts is not None else config.quality.max_attempts
        self.quality_threshold = (
            quality_threshold if quality_threshold is not None else config.quality.quality_threshold
        )
        self.best_effort = best_effort if best_effort is not None else config.quality.best_effort

        self.engine = (
            WorkflowEngine(self.name, RAGState, recursion_limit=4 * self.max_attempts + 10)
            .add_step("analyze_query", self._analyze_query)
            .add_step("retrieve_documents", self._retrieve_documents)
            .add_step("filter_relevant", self._filter_relevant)
            .add_step("generate_answer", self._generate_answer, on_error=self._generation_failed)
            .add_step("evaluate_quality", self._evaluate_quality)
            .add_step("improve_query", self._improve_query)
            .add_step("finalize_accepted", self._finalize_accepted)
            .add_step("finalize_exhausted", self._finalize_exhausted)
            .set_entry("analyze_query")
            .add_sequence(["analyze_query", "retrieve_documents", "filter_relevant"])
            .add_router("filter_relevant", self._should_generate, {
                "generate": "generate_answer",
                "exhausted": "finalize_exhausted",
            })
            .add_sequence(["generate_answer", "evaluate_quality"])
            .add_router("evaluate_quality", self._grade_decision, {
                "accept": "finalize_accepted",
                "exhausted": "finalize_exhausted",
                "improve": "improve_query",
            })
            .add_sequence(["improve_query", "filter_relevant"])
            .add_finish("finalize_accepted")
            .add_finish("finalize_exhausted")
            .compile()
        )
        logger.info("QualityGatedRAGWorkflow initialized")

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _analyze_query(self, state: RAGState) -> Dict[str, Any]:
        original = state["original_input"]
        result = self.rewriter.rewrite(original)
        working = result.rewritten_query if result.is_valid else original

        log_step(logger, self.name, "analyze_query", {
            "intent": result.intent.value,
            "confidence": result.confidence,
            "working_query": working[:80],
        })
        return {
            "working_query": working,
            "query_intent": result.intent.value,
            "query_keywords": list(result.keywords),
            "search_queries": state["search_queries"] + [working],
            "step": ProcessingStep.QUERY_ANALYSIS,
        }

    def _retrieve_documents(self, state: RAGState) -> Dict[str, Any]:
        query = state["working_query"]
        found = self.store.search(query, config.retrieval.default_max_results)
        documents = merge_documents(found, self.store.quick_search(query))

        log_step(logger, self.name, "retrieve_documents", {"documents": len(documents)})
        return {"documents": documents, "step": ProcessingStep.DOCUMENT_RETRIEVAL}

    def _filter_relevant(self, state: RAGState) -> Dict[str, Any]:
        relevant = select_relevant(
            state["documents"],
            config.retrieval.min_relevance_score,
            config.retrieval.relevant_top_k
        )
        log_step(logger, self.name, "filter_relevant", {
            "documents": len(state["documents"]), "relevant": len(relevant)
        })
        return {"relevant_documents": relevant, "step": ProcessingStep.RELEVANCE_FILTERING}

    def _should_generate(self, state: RAGState) -> Literal["generate", "exhausted"]:
        if state["attempts"] >= state["max_attempts"]:
            return "exhausted"
        return "generate"

    def _generate_answer(self, state: RAGState) -> Dict[str, Any]:
        answer, used_fallback = self.generator.generate(
            state["original_input"], state["relevant_documents"]
        )
        attempts = state["attempts"] + 1
        log_step(logger, self.name, "generate_answer", {
            "attempt": attempts, "fallback": used_fallback
        })
        return {
            "answer": answer,
            "used_fallback_answer": used_fallback,
            "attempts": attempts,
            "step": ProcessingStep.ANSWER_GENERATION,
        }

    @staticmethod
    def _generation_failed(state: RAGState, step_name: str, error: Exception) -> Dict[str, Any]:
        # a crashed generation still used up an attempt
        update = failure_update(state, step_name, error)
        update["attempts"] = state["attempts"] + 1
        return update

    def _evaluate_quality(self, state: RAGState) -> Dict[str, Any]:
        context = format_documents_for_prompt(state["relevant_documents"]) or "관련 문서가 없습니다."
        grade = self.evaluator.evaluate(state["original_input"], state["answer"], context)

        update = {
            "quality_score": grade.score,
            "quality_explanation": grade.explanation,
            "quality_history": state["quality_history"] + [grade.score],
            "step": ProcessingStep.QUALITY_EVALUATION,
        }
        best = state["best_quality_score"]
        if best is None or grade.score > best:
            update["best_quality_score"] = grade.score
            update["best_answer"] = state["answer"]

        log_step(logger, self.name, "evaluate_quality", {
            "attempt": state["attempts"], "score": grade.score
        })
        return update

    def _grade_decision(self, state: RAGState) -> Literal["accept", "exhausted", "improve"]:
        if state["quality_score"] >= state["quality_threshold"]:
            return "accept"
        if state["attempts"] >= state["max_attempts"]:
            return "exhausted"
        return "improve"

    def _improve_query(self, state: RAGState) -> Dict[str, Any]:
        improved = expand_query(state["original_input"])
        documents = state["documents"]
        try:
            additional = self.store.search(improved, config.retrieval.improve_max_results)
            documents = merge_documents(documents, additional)
        except Exception as e:
            logger.warning(f"Additional retrieval failed, keeping {len(documents)} documents: {e}")

        log_step(logger, self.name, "improve_query", {
            "improved_query": improved, "documents": len(documents)
        })
        return {
            "working_query": improved,
            "search_queries": state["search_queries"] + [improved],
            "documents": documents,
            "step": ProcessingStep.QUERY_REFINEMENT,
        }

    def _finalize_accepted(self, state: RAGState) -> Dict[str, Any]:
        return {
            "messages": state["messages"] + [Message.assistant(state["answer"])],
            "step": ProcessingStep.COMPLETED,
            "ended_at": datetime.now(),
        }

    def _finalize_exhausted(self, state: RAGState) -> Dict[str, Any]:
        update = {"failure_reason": EXHAUSTED_REASON, "ended_at": datetime.now()}

        if state["best_effort"] and state["best_quality_score"] is not None:
            answer = state["best_answer"]
            update.update({
                "answer": answer,
                "quality_score": state["best_quality_score"],
                "messages": state["messages"] + [Message.assistant(answer)],
                "step": ProcessingStep.COMPLETED,
            })
            logger.warning(
                f"Quality threshold not met after {state['attempts']} attempts, "
                f"returning best answer (score {state['best_quality_score']:.2f})"
            )
        else:
            update["step"] = ProcessingStep.FAILED
            logger.warning(f"Quality threshold not met after {state['attempts']} attempts")
        return update

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(
        self,
        query: str,
        session_key: Optional[str] = None,
        best_effort: Optional[bool] = None
    ) -> RAGState:
        """
        Answer ``query`` through the quality-gated loop.

        The final state is saved to ``self.memory`` under ``session_key``
        (a fresh ``session_*`` key when omitted).

        Returns:
            Final RAGState; ``step`` is COMPLETED or FAILED.
        """
        session_key = session_key or self.memory.create_session("session")
        logger.info(f"Processing query: {query[:100]} (session {session_key})")

        initial_state = create_rag_state(
            query,
            session_key=session_key,
            max_attempts=self.max_attempts,
            quality_threshold=self.quality_threshold,
            best_effort=self.best_effort if best_effort is None else best_effort,
        )
        final_state = self.engine.run(initial_state)
        final_state["last_checkpoint_id"] = self.memory.save(final_state)

        logger.info(f"RAG run finished: {state_summary(final_state)}")
        return final_state
