"""Workflow package: the LangGraph engine and the restaurant workflows."""

from .state_definitions import (
    ProcessingStep, ReActStep,
    MenuRecommendationState, MenuQAState, RAGState, MessageGraphState,
    ReActState, ToolCallingState,
    create_menu_recommendation_state, create_menu_qa_state, create_rag_state,
    create_message_graph_state, create_react_state, create_tool_calling_state,
    is_terminal, processing_time_seconds, progress_percentage, state_summary,
)
from .engine import WorkflowEngine, STOP, failure_update, has_failed
from .menu_recommendation import MenuRecommendationWorkflow
from .menu_qa import MenuQAWorkflow
from .agentic_rag import QualityGatedRAGWorkflow, EXHAUSTED_REASON
from .message_graph import MessageGraphWorkflow
from .react_agent import ReActAgentWorkflow
from .tool_calling import ToolCallingWorkflow

__all__ = [
    "ProcessingStep", "ReActStep",
    "MenuRecommendationState", "MenuQAState", "RAGState", "MessageGraphState",
    "ReActState", "ToolCallingState",
    "create_menu_recommendation_state", "create_menu_qa_state", "create_rag_state",
    "create_message_graph_state", "create_react_state", "create_tool_calling_state",
    "is_terminal", "processing_time_seconds", "progress_percentage", "state_summary",
    "WorkflowEngine", "STOP", "failure_update", "has_failed",
    "MenuRecommendationWorkflow", "MenuQAWorkflow", "QualityGatedRAGWorkflow",
    "EXHAUSTED_REASON", "MessageGraphWorkflow", "ReActAgentWorkflow", "ToolCallingWorkflow",
]
