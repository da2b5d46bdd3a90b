"""
Action extraction from free-text reasoning output.

The reasoning model signals a tool request in prose (``Action:``,
``Tool Call:`` or a tool name). This is best-effort: if the model omits
every marker the cycle is treated as finished.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

ACTION_MARKERS = ("Action:", "Tool Call:")


@dataclass(frozen=True)
class ActionRequest:
    tool_name: str
    query: str


def needs_action(text: str, tool_names: Sequence[str]) -> bool:
    if not text:
        return False
    return any(m in text for m in ACTION_MARKERS) or any(name in text for name in tool_names)


def extract_intended_action(
    text: str,
    tool_names: Sequence[str],
    fallback_query: str
) -> Optional[ActionRequest]:
    """
    Decide whether ``text`` asks for a tool and which one.

    Args:
        text: Reasoning output.
        tool_names: Registered tool names; the first is the default when a
            marker is present but no tool is named.
        fallback_query: Query used when the call carries no argument.

    Returns:
        ActionRequest, or None when no action is requested.
    """
    if not tool_names or not needs_action(text, tool_names):
        return None

    mentioned = [(text.find(name), name) for name in tool_names if name in text]
    tool_name = min(mentioned)[1] if mentioned else tool_names[0]

    match = re.search(re.escape(tool_name) + r"""\(["'](.*?)["']\)""", text)
    query = match.group(1).strip() if match and match.group(1).strip() else fallback_query

    return ActionRequest(tool_name=tool_name, query=query)
