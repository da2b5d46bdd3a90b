"""
LiteLLM wrapper for the restaurant workflows.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import litellm
from tenacity import retry, stop_after_attempt, wait_exponential

from ..utils import (
    config, get_llm_logger, get_gemini_api_key, log_llm_call, LLMUnavailableError, Timer,
)

logger = get_llm_logger()

litellm.set_verbose = False

DEFAULT_SYSTEM_MESSAGE = "당신은 레스토랑 정보를 안내하는 친절한 AI 어시스턴트입니다."


@dataclass
class RequestedToolCall:
    """A function call requested by the model."""

    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMReply:
    content: str
    tool_calls: List[RequestedToolCall] = field(default_factory=list)


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Could not parse tool arguments: {str(raw)[:200]}")
        return {"query": str(raw)}
    return parsed if isinstance(parsed, dict) else {"query": str(parsed)}


def _to_reply(response: Any) -> LLMReply:
    message = response.choices[0].message
    requested = []
    for call in getattr(message, "tool_calls", None) or []:
        requested.append(RequestedToolCall(
            id=call.id,
            name=call.function.name,
            arguments=_parse_arguments(call.function.arguments),
        ))
    return LLMReply(content=message.content or "", tool_calls=requested)


class LLMWrapper:
    """Primary model with retries, then a local Ollama fallback."""

    def __init__(self):
        self.primary_model = config.llm.primary_model
        self.fallback_model = config.llm.fallback_model
        self.ollama_base_url = config.llm.ollama_base_url
        self.temperature = config.llm.temperature
        self.max_tokens = config.llm.max_tokens
        self.timeout = config.llm.timeout
        self._last_model_used = None

        api_key = get_gemini_api_key()
        if api_key:
            litellm.api_key = api_key

        logger.info(f"LLMWrapper initialized: primary={self.primary_model}, fallback={self.fallback_model}")

    @property
    def last_model_used(self) -> Optional[str]:
        return self._last_model_used

    @retry(
        stop=stop_after_attempt(config.llm.retry_attempts),
        wait=wait_exponential(min=config.llm.retry_min_wait, max=config.llm.retry_max_wait),
        reraise=True,
    )
    def _call_primary(self, messages: List[Dict], **kwargs) -> Any:
        """Call primary LLM (Gemini)."""
        return litellm.completion(
            model=self.primary_model,
            messages=messages,
            temperature=kwargs.get("temperature", self.temperature),
            max_tokens=kwargs.get("max_tokens", self.max_tokens),
            timeout=self.timeout,
            **({"tools": kwargs["tools"]} if kwargs.get("tools") else {})
        )

    def _call_fallback(self, messages: List[Dict], **kwargs) -> Any:
        """Call fallback LLM (Ollama)."""
        return litellm.completion(
            model=self.fallback_model,
            api_base=self.ollama_base_url,
            messages=messages,
            temperature=kwargs.get("temperature", self.temperature),
            max_tokens=kwargs.get("max_tokens", self.max_tokens),
            timeout=self.timeout * 2,
            **({"tools": kwargs["tools"]} if kwargs.get("tools") else {})
        )

    def _invoke(self, messages: List[Dict], **kwargs) -> LLMReply:
        prompt_length = sum(len(str(m.get("content") or "")) for m in messages)

        with Timer() as timer:
            try:
                reply = _to_reply(self._call_primary(messages, **kwargs))
                self._last_model_used = self.primary_model
                is_fallback = False
            except Exception as e:
                logger.warning(f"Primary LLM failed: {e}. Falling back to Ollama...")
                try:
                    reply = _to_reply(self._call_fallback(messages, **kwargs))
                    self._last_model_used = self.fallback_model
                    is_fallback = True
                except Exception as fallback_error:
                    logger.error(f"Both LLMs failed. Primary: {e}, Fallback: {fallback_error}")
                    raise LLMUnavailableError(
                        f"LLM unavailable: {e}",
                        details={"primary_error": str(e), "fallback_error": str(fallback_error)},
                    ) from fallback_error

        log_llm_call(
            logger, self._last_model_used, prompt_length, len(reply.content),
            timer.elapsed_ms(), is_fallback
        )
        return reply

    def complete(
        self,
        prompt: str,
        system_message: str = DEFAULT_SYSTEM_MESSAGE,
        **kwargs
    ) -> str:
        """
        Get LLM completion with automatic fallback.

        Args:
            prompt: User prompt.
            system_message: System message.
            **kwargs: Additional parameters (temperature, max_tokens).

        Returns:
            LLM response text.

        Raises:
            LLMUnavailableError: if both models fail.
        """
        messages = [
            {"role": "system", "content": system_message},
            {"role": "user", "content": prompt}
        ]
        return self._invoke(messages, **kwargs).content

    def generate(self, prompt: str) -> str:
        """Single-prompt generation with the default system message."""
        return self.complete(prompt)

    def chat(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMReply:
        """
        Multi-message call, optionally offering function tools.

        Returns:
            LLMReply with text content and any requested tool calls.
        """
        return self._invoke(list(messages), tools=tools, **kwargs)


# Global instance
_llm_wrapper: Optional[LLMWrapper] = None


def get_llm() -> LLMWrapper:
    """Get or create global LLM wrapper instance."""
    global _llm_wrapper
    if _llm_wrapper is None:
        _llm_wrapper = LLMWrapper()
    return _llm_wrapper
