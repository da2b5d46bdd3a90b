"""
Exception types for the restaurant workflows.

Collaborator failures that have a safe fallback are handled where they
occur; these types cover the cases that are reported to the caller.
"""

from typing import Any, Dict, Iterable, List, Optional


class RestaurantGraphError(Exception):
    """Base exception with a stable error code and structured details."""

    code = "RESTAURANT_GRAPH_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class InvalidInputError(RestaurantGraphError, ValueError):
    """Rejected caller input, optionally listing the accepted values."""

    code = "INVALID_INPUT"

    def __init__(self, message: str, valid_values: Optional[Iterable[str]] = None):
        self.valid_values: List[str] = list(valid_values or [])
        details = {"valid_values": self.valid_values} if self.valid_values else {}
        super().__init__(message, details=details)


class LLMUnavailableError(RestaurantGraphError, RuntimeError):
    """Both the primary and the fallback model failed."""

    code = "LLM_UNAVAILABLE"


class ToolCallStateError(RestaurantGraphError):
    """Illegal tool-call status transition."""

    code = "TOOL_CALL_STATE"
