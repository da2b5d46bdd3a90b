"""State definitions for the LangGraph workflows."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, TypedDict

from ..agents import ActionRequest
from ..llm import RequestedToolCall
from ..messages import Message, ToolCall
from ..retrieval import Document


class ProcessingStep(str, Enum):
    """Reporting tag for the pipeline workflows. Never used for dispatch."""

    STARTED = "STARTED"
    PREFERENCE_SELECTION = "PREFERENCE_SELECTION"
    MENU_RECOMMENDATION = "MENU_RECOMMENDATION"
    MENU_INFO = "MENU_INFO"
    INPUT_ANALYSIS = "INPUT_ANALYSIS"
    MENU_SEARCH = "MENU_SEARCH"
    QUERY_ANALYSIS = "QUERY_ANALYSIS"
    QUERY_REFINEMENT = "QUERY_REFINEMENT"
    DOCUMENT_RETRIEVAL = "DOCUMENT_RETRIEVAL"
    RELEVANCE_FILTERING = "RELEVANCE_FILTERING"
    ANSWER_GENERATION = "ANSWER_GENERATION"
    QUALITY_EVALUATION = "QUALITY_EVALUATION"
    TOOL_EXECUTION = "TOOL_EXECUTION"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ReActStep(str, Enum):
    STARTED = "started"
    REASONING = "reasoning"
    ACTING = "acting"
    OBSERVING = "observing"
    CHECKPOINTING = "checkpointing"
    COMPLETED = "completed"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    ERROR = "error"


TERMINAL_STEPS = {
    ProcessingStep.COMPLETED,
    ProcessingStep.FAILED,
    ReActStep.COMPLETED,
    ReActStep.MAX_ITERATIONS_REACHED,
    ReActStep.ERROR,
}

_PROGRESS = {
    ProcessingStep.STARTED: 0,
    ProcessingStep.QUERY_ANALYSIS: 15,
    ProcessingStep.DOCUMENT_RETRIEVAL: 30,
    ProcessingStep.RELEVANCE_FILTERING: 45,
    ProcessingStep.ANSWER_GENERATION: 60,
    ProcessingStep.QUALITY_EVALUATION: 80,
    ProcessingStep.QUERY_REFINEMENT: 70,
    ProcessingStep.COMPLETED: 100,
    ProcessingStep.FAILED: 100,
}


# =============================================================================
# LINEAR / ROUTED
# =============================================================================

class MenuRecommendationState(TypedDict):
    preference: Optional[str]
    recommended_menu: Optional[str]
    menu_info: Optional[str]
    step: str
    error_message: Optional[str]
    started_at: datetime
    ended_at: Optional[datetime]


def create_menu_recommendation_state() -> MenuRecommendationState:
    return MenuRecommendationState(
        preference=None,
        recommended_menu=None,
        menu_info=None,
        step=ProcessingStep.STARTED,
        error_message=None,
        started_at=datetime.now(),
        ended_at=None,
    )


class MenuQAState(TypedDict):
    original_input: str
    is_menu_related: Optional[bool]
    branch: Optional[str]
    search_results: List[str]
    answer: Optional[str]
    used_fallback_answer: bool
    step: str
    error_message: Optional[str]
    started_at: datetime
    ended_at: Optional[datetime]


def create_menu_qa_state(query: str) -> MenuQAState:
    return MenuQAState(
        original_input=query,
        is_menu_related=None,
        branch=None,
        search_results=[],
        answer=None,
        used_fallback_answer=False,
        step=ProcessingStep.STARTED,
        error_message=None,
        started_at=datetime.now(),
        ended_at=None,
    )


# =============================================================================
# QUALITY-GATED RAG
# =============================================================================

class RAGState(TypedDict):
    """
    State of the quality-gated retrieval loop.

    ``relevant_documents`` is rebuilt from ``documents`` on every filtering
    pass, so it only ever holds ids present in ``documents``.
    """
    # Query
    original_input: str
    working_query: Optional[str]
    query_intent: Optional[str]
    query_keywords: List[str]
    search_queries: List[str]

    # Retrieval
    documents: List[Document]
    relevant_documents: List[Document]

    # Generation and grading
    answer: Optional[str]
    used_fallback_answer: bool
    quality_score: Optional[float]
    quality_explanation: Optional[str]
    quality_history: List[float]
    best_quality_score: Optional[float]
    best_answer: Optional[str]
    attempts: int
    max_attempts: int
    quality_threshold: float
    best_effort: bool

    # Bookkeeping
    messages: List[Message]
    step: str
    session_key: Optional[str]
    last_checkpoint_id: Optional[str]
    error_message: Optional[str]
    failure_reason: Optional[str]
    started_at: datetime
    ended_at: Optional[datetime]


def create_rag_state(
    query: str,
    session_key: Optional[str] = None,
    max_attempts: int = 3,
    quality_threshold: float = 0.7,
    best_effort: bool = False
) -> RAGState:
    return RAGState(
        original_input=query,
        working_query=query,
        query_intent=None,
        query_keywords=[],
        search_queries=[],
        documents=[],
        relevant_documents=[],
        answer=None,
        used_fallback_answer=False,
        quality_score=None,
        quality_explanation=None,
        quality_history=[],
        best_quality_score=None,
        best_answer=None,
        attempts=0,
        max_attempts=max_attempts,
        quality_threshold=quality_threshold,
        best_effort=best_effort,
        messages=[Message.user(query)] if query else [],
        step=ProcessingStep.STARTED,
        session_key=session_key,
        last_checkpoint_id=None,
        error_message=None,
        failure_reason=None,
        started_at=datetime.now(),
        ended_at=None,
    )


class MessageGraphState(TypedDict):
    original_input: str
    messages: List[Message]
    documents: List[str]
    answer: Optional[str]
    quality_score: Optional[float]
    quality_explanation: Optional[str]
    attempts: int
    max_attempts: int
    quality_threshold: float
    best_effort: bool
    step: str
    error_message: Optional[str]
    failure_reason: Optional[str]
    started_at: datetime
    ended_at: Optional[datetime]


def create_message_graph_state(
    query: str,
    max_attempts: int = 3,
    quality_threshold: float = 0.7,
    best_effort: bool = True
) -> MessageGraphState:
    return MessageGraphState(
        original_input=query,
        messages=[Message.user(query)],
        documents=[],
        answer=None,
        quality_score=None,
        quality_explanation=None,
        attempts=0,
        max_attempts=max_attempts,
        quality_threshold=quality_threshold,
        best_effort=best_effort,
        step=ProcessingStep.STARTED,
        error_message=None,
        failure_reason=None,
        started_at=datetime.now(),
        ended_at=None,
    )


# =============================================================================
# REACT
# =============================================================================

class ReActState(TypedDict):
    """
    Long-lived conversation state of a ReAct thread.

    ``messages`` and ``tool_calls`` accumulate across turns; the remaining
    fields describe the current turn.
    """
    session_key: str
    original_input: Optional[str]
    messages: List[Message]
    tool_calls: List[ToolCall]
    observations: List[str]
    iteration: int
    max_iterations: int
    last_reasoning: Optional[str]
    pending_action: Optional[ActionRequest]
    answer: Optional[str]
    step: str
    last_checkpoint_id: Optional[str]
    error_message: Optional[str]
    started_at: datetime
    ended_at: Optional[datetime]


def create_react_state(thread_id: str, max_iterations: int = 5) -> ReActState:
    return ReActState(
        session_key=thread_id,
        original_input=None,
        messages=[],
        tool_calls=[],
        observations=[],
        iteration=0,
        max_iterations=max_iterations,
        last_reasoning=None,
        pending_action=None,
        answer=None,
        step=ReActStep.STARTED,
        last_checkpoint_id=None,
        error_message=None,
        started_at=datetime.now(),
        ended_at=None,
    )


# =============================================================================
# TOOL CALLING
# =============================================================================

class ToolCallingState(TypedDict):
    original_input: str
    chat_messages: List[Dict[str, Any]]
    pending_calls: List[RequestedToolCall]
    tool_calls: List[ToolCall]
    rounds: int
    max_rounds: int
    answer: Optional[str]
    step: str
    error_message: Optional[str]
    started_at: datetime
    ended_at: Optional[datetime]


def create_tool_calling_state(
    query: str,
    system_prompt: str,
    max_rounds: int = 3
) -> ToolCallingState:
    return ToolCallingState(
        original_input=query,
        chat_messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": query},
        ],
        pending_calls=[],
        tool_calls=[],
        rounds=0,
        max_rounds=max_rounds,
        answer=None,
        step=ProcessingStep.STARTED,
        error_message=None,
        started_at=datetime.now(),
        ended_at=None,
    )


# =============================================================================
# HELPERS
# =============================================================================

def is_terminal(state: Dict[str, Any]) -> bool:
    return state.get("step") in TERMINAL_STEPS


def processing_time_seconds(state: Dict[str, Any]) -> float:
    started = state.get("started_at")
    if not started:
        return 0.0
    ended = state.get("ended_at") or datetime.now()
    return (ended - started).total_seconds()


def progress_percentage(step: str) -> int:
    try:
        return _PROGRESS.get(ProcessingStep(step), 0)
    except ValueError:
        return 100 if step in TERMINAL_STEPS else 0


def state_summary(state: Dict[str, Any]) -> str:
    """One-line description of a RAG-style state for logs."""
    score = state.get("quality_score")
    return (
        f"step={state.get('step')}, attempts={state.get('attempts', 0)}/{state.get('max_attempts', 0)}, "
        f"quality={'n/a' if score is None else f'{score:.2f}'}, "
        f"documents={len(state.get('documents', []))}, relevant={len(state.get('relevant_documents', []))}, "
        f"elapsed={processing_time_seconds(state):.2f}s"
    )
