"""LLM integration modules for the restaurant workflows."""

from .litellm_wrapper import LLMWrapper, LLMReply, RequestedToolCall, get_llm
from .prompt_templates import get_prompt, format_documents_for_prompt

__all__ = [
    "LLMWrapper", "LLMReply", "RequestedToolCall", "get_llm",
    "get_prompt", "format_documents_for_prompt",
]
