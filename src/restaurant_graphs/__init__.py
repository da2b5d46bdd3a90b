"""
Restaurant workflow graphs.

LangGraph workflows answering restaurant questions: a linear menu
recommendation, routed menu Q&A, a quality-gated RAG loop, a message-graph
retry loop, a ReAct agent with thread memory and a tool-calling agent.
"""

from .service import RestaurantGraphService, WorkflowResult, create_service

__version__ = "0.1.0"

__all__ = ["RestaurantGraphService", "WorkflowResult", "create_service", "__version__"]
