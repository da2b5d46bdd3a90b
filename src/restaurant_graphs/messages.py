"""Conversation messages and tool-call records."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .utils import ToolCallStateError


class MessageRole(str, Enum):
    USER = "User"
    ASSISTANT = "Assistant"
    TOOL_CALL = "ToolCall"
    TOOL_RESULT = "ToolResult"
    SYSTEM = "System"


_PREFIXES = {
    MessageRole.USER: "Human",
    MessageRole.ASSISTANT: "Assistant",
    MessageRole.TOOL_CALL: "Tool Call",
    MessageRole.TOOL_RESULT: "Tool Result",
    MessageRole.SYSTEM: "System",
}


@dataclass
class Message:
    """
    One entry of a conversation log.

    ``tool_name`` and ``parameters`` are set on tool calls, ``source`` on
    tool results.
    """

    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    tool_name: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(MessageRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(MessageRole.ASSISTANT, content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(MessageRole.SYSTEM, content)

    @classmethod
    def tool_call(cls, tool_name: str, parameters: Dict[str, Any]) -> "Message":
        return cls(
            MessageRole.TOOL_CALL,
            f"{tool_name}({parameters})",
            tool_name=tool_name,
            parameters=dict(parameters),
        )

    @classmethod
    def tool_result(cls, content: str, source: Optional[str] = None) -> "Message":
        return cls(MessageRole.TOOL_RESULT, content, source=source)

    def format(self) -> str:
        text = f"{_PREFIXES[self.role]}: {self.content}"
        if self.role == MessageRole.TOOL_RESULT and self.source:
            text += f"\n[Source: {self.source}]"
        return text


def format_conversation(messages) -> str:
    return "\n".join(m.format() for m in messages)


def last_user_message(messages) -> Optional[str]:
    for message in reversed(messages):
        if message.role == MessageRole.USER:
            return message.content
    return None


class ToolCallStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


_TRANSITIONS = {
    ToolCallStatus.PENDING: {ToolCallStatus.RUNNING},
    ToolCallStatus.RUNNING: {ToolCallStatus.SUCCESS, ToolCallStatus.FAILED},
    ToolCallStatus.SUCCESS: set(),
    ToolCallStatus.FAILED: set(),
}


@dataclass
class ToolCall:
    """A single tool invocation, PENDING -> RUNNING -> SUCCESS | FAILED."""

    tool_name: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: f"call_{uuid.uuid4().hex[:8]}")
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    error_message: Optional[str] = None

    def _move_to(self, status: ToolCallStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise ToolCallStateError(
                f"Tool call {self.id} cannot move from {self.status.value} to {status.value}",
                details={"tool_call_id": self.id, "from": self.status.value, "to": status.value},
            )
        self.status = status

    def start(self) -> None:
        self._move_to(ToolCallStatus.RUNNING)
        self.started_at = datetime.now()

    def succeed(self, result: str) -> None:
        self._move_to(ToolCallStatus.SUCCESS)
        self.result = result
        self.ended_at = datetime.now()

    def fail(self, error_message: str) -> None:
        self._move_to(ToolCallStatus.FAILED)
        self.error_message = error_message
        self.ended_at = datetime.now()

    @property
    def is_finished(self) -> bool:
        return self.status in (ToolCallStatus.SUCCESS, ToolCallStatus.FAILED)

    @property
    def query(self) -> str:
        return str(self.parameters.get("query", ""))

    def duration_ms(self) -> Optional[float]:
        if self.started_at and self.ended_at:
            return (self.ended_at - self.started_at).total_seconds() * 1000
        return None
