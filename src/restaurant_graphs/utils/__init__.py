"""
Utility modules for the restaurant workflows.

This package provides configuration management, logging, errors and metrics.
"""

from .config import config, get_config, get_gemini_api_key, AppConfig
from .exceptions import (
    RestaurantGraphError,
    InvalidInputError,
    LLMUnavailableError,
    ToolCallStateError,
)
from .logger import (
    get_logger,
    get_agent_logger,
    get_llm_logger,
    get_workflow_logger,
    get_retrieval_logger,
    get_memory_logger,
    get_tools_logger,
    log_agent_decision,
    log_step,
    log_retrieval_operation,
    log_llm_call,
    log_tool_call,
)
from .metrics import (
    metrics_collector,
    MetricsCollector,
    RunMetrics,
    Timer,
)


__all__ = [
    # Config
    "config",
    "get_config",
    "get_gemini_api_key",
    "AppConfig",
    # Errors
    "RestaurantGraphError",
    "InvalidInputError",
    "LLMUnavailableError",
    "ToolCallStateError",
    # Logger
    "get_logger",
    "get_agent_logger",
    "get_llm_logger",
    "get_workflow_logger",
    "get_retrieval_logger",
    "get_memory_logger",
    "get_tools_logger",
    "log_agent_decision",
    "log_step",
    "log_retrieval_operation",
    "log_llm_call",
    "log_tool_call",
    # Metrics
    "metrics_collector",
    "MetricsCollector",
    "RunMetrics",
    "Timer",
]
