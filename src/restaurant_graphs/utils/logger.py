"""
Logging module for the restaurant workflows.

Structured log lines with JSON metadata for step transitions, agent
decisions, retrieval, LLM and tool calls.
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import config


class StructuredFormatter(logging.Formatter):
    """
    Formats log records as: timestamp | level | logger | message | metadata_json
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()

        metadata = getattr(record, 'metadata', None)
        metadata_str = json.dumps(metadata, ensure_ascii=False, default=str) if metadata else "{}"

        log_line = f"{timestamp} | {record.levelname} | {record.name} | {record.getMessage()} | {metadata_str}"

        if record.exc_info:
            log_line += f"\n{self.formatException(record.exc_info)}"

        return log_line


class WorkflowLogger(logging.Logger):
    """Logger with structured metadata support."""

    def _log_with_metadata(
        self,
        level: int,
        msg: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        if self.isEnabledFor(level):
            self._log(level, msg, (), extra={'metadata': metadata or {}})

    def info_with_metadata(self, msg: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log_with_metadata(logging.INFO, msg, metadata)

    def debug_with_metadata(self, msg: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log_with_metadata(logging.DEBUG, msg, metadata)

    def warning_with_metadata(self, msg: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log_with_metadata(logging.WARNING, msg, metadata)

    def error_with_metadata(self, msg: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log_with_metadata(logging.ERROR, msg, metadata)


def setup_logger(name: str, level: Optional[str] = None) -> WorkflowLogger:
    """
    Set up and return a configured logger instance.

    Handlers are attached once per logger name, so repeated calls for the
    same component do not duplicate output.

    Args:
        name: Logger name, prefixed with ``restaurant_graphs.``.
        level: Log level name. Defaults to the configured level.

    Returns:
        Configured WorkflowLogger instance.
    """
    logging.setLoggerClass(WorkflowLogger)
    try:
        logger = logging.getLogger(f"restaurant_graphs.{name}")
    finally:
        logging.setLoggerClass(logging.Logger)

    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)
    logger.setLevel(log_level)

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(StructuredFormatter())
        console_handler.setLevel(log_level)
        logger.addHandler(console_handler)
        logger.propagate = False

    return logger


def get_logger(name: str) -> WorkflowLogger:
    """Get or create a logger for the given name."""
    return setup_logger(name)


def get_agent_logger(agent_name: str) -> WorkflowLogger:
    return get_logger(f"agents.{agent_name}")


def get_llm_logger() -> WorkflowLogger:
    return get_logger("llm")


def get_workflow_logger(workflow_name: Optional[str] = None) -> WorkflowLogger:
    if workflow_name:
        return get_logger(f"workflow.{workflow_name}")
    return get_logger("workflow")


def get_retrieval_logger() -> WorkflowLogger:
    return get_logger("retrieval")


def get_memory_logger() -> WorkflowLogger:
    return get_logger("memory")


def get_tools_logger() -> WorkflowLogger:
    return get_logger("tools")


def log_agent_decision(
    logger: WorkflowLogger,
    agent_name: str,
    input_state: Dict[str, Any],
    output_decision: Dict[str, Any],
    reasoning: str
) -> None:
    """
    Log an agent's decision with full context.

    Args:
        logger: The logger instance to use.
        agent_name: Name of the agent making the decision.
        input_state: The input the agent received.
        output_decision: The decision/output the agent produced.
        reasoning: Short explanation of the decision.
    """
    logger.info_with_metadata(
        f"{agent_name}: {reasoning}",
        metadata={
            "agent_name": agent_name,
            "input_state_keys": list(input_state.keys()),
            "output_decision": output_decision,
            "reasoning": reasoning
        }
    )


def log_step(
    logger: WorkflowLogger,
    workflow: str,
    step: str,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Log a workflow step transition."""
    logger.info_with_metadata(
        f"[{workflow}] {step}",
        metadata={"workflow": workflow, "step": step, **(details or {})}
    )


def log_retrieval_operation(
    logger: WorkflowLogger,
    query: str,
    search_strategy: str,
    num_results: int,
    top_scores: List[float],
    latency_ms: float
) -> None:
    """Log a retrieval operation with performance metrics."""
    logger.info_with_metadata(
        f"Retrieval completed: {num_results} results in {latency_ms:.2f}ms",
        metadata={
            "query": query[:100],
            "search_strategy": search_strategy,
            "num_results": num_results,
            "top_scores": [round(s, 4) for s in top_scores[:5]],
            "latency_ms": latency_ms
        }
    )


def log_llm_call(
    logger: WorkflowLogger,
    model_used: str,
    prompt_length: int,
    response_length: int,
    latency_ms: float,
    is_fallback: bool = False
) -> None:
    """Log an LLM API call with performance metrics."""
    logger.info_with_metadata(
        f"LLM call to {model_used}: {latency_ms:.2f}ms",
        metadata={
            "model": model_used,
            "prompt_length": prompt_length,
            "response_length": response_length,
            "latency_ms": latency_ms,
            "is_fallback": is_fallback
        }
    )


def log_tool_call(
    logger: WorkflowLogger,
    tool_name: str,
    query: str,
    status: str,
    latency_ms: float,
    error: Optional[str] = None
) -> None:
    """Log a tool execution."""
    metadata = {
        "tool": tool_name,
        "query": query[:100],
        "status": status,
        "latency_ms": latency_ms,
    }
    if error:
        metadata["error"] = error
        logger.warning_with_metadata(f"Tool {tool_name} failed: {error}", metadata)
    else:
        logger.info_with_metadata(f"Tool {tool_name}: {status} in {latency_ms:.2f}ms", metadata)
