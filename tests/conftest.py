"""Shared fixtures: a scripted LLM stand-in and preloaded stores."""

from datetime import datetime, timedelta

import pytest

from restaurant_graphs.llm import LLMReply
from restaurant_graphs.memory import MemoryStore
from restaurant_graphs.retrieval import create_document_store
from restaurant_graphs.tools import BaseTool, MenuSearchTool, ToolRegistry, WineSearchTool
from restaurant_graphs.utils import LLMUnavailableError


class StubLLM:
    """
    Scripted replacement for ``LLMWrapper``.

    Text calls pop from ``responses`` (then repeat ``default``); chat calls
    pop from ``replies``. With ``fail=True`` every call raises
    ``LLMUnavailableError``.
    """

    def __init__(self, responses=None, default="", replies=None, fail=False):
        self.responses = list(responses or [])
        self.default = default
        self.replies = list(replies or [])
        self.fail = fail
        self.prompts = []
        self.chat_calls = []

    def complete(self, prompt, system_message=None, **kwargs):
        self.prompts.append(prompt)
        if self.fail:
            raise LLMUnavailableError("both models failed")
        if self.responses:
            return self.responses.pop(0)
        return self.default

    def generate(self, prompt):
        return self.complete(prompt)

    def chat(self, messages, tools=None, **kwargs):
        self.chat_calls.append({"messages": list(messages), "tools": tools})
        if self.fail:
            raise LLMUnavailableError("both models failed")
        if self.replies:
            return self.replies.pop(0)
        return LLMReply(content=self.default)


class EchoTool(BaseTool):
    """Tool returning a fixed prefix plus the query."""

    def __init__(self, name, prefix="result", source="echo", error=None):
        self.name = name
        self.description = f"{name} test tool"
        self.source = source
        self.prefix = prefix
        self.error = error
        self.queries = []

    def run(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return f"{self.prefix}: {query}"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def stub_llm():
    return StubLLM(default="SCORE: 0.9\nREASON: 좋은 답변")


@pytest.fixture
def store():
    return create_document_store()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory(clock):
    return MemoryStore(
        lambda key: {"session_key": key, "messages": [], "tool_calls": []},
        clock=clock,
        name="test_memory",
    )


@pytest.fixture
def echo_registry():
    return ToolRegistry([
        EchoTool("search_menu", "menu", "restaurant_menu.txt"),
        EchoTool("search_wine", "wine", "restaurant_wine.txt"),
        EchoTool("search_web", "web", "web_search"),
    ])


@pytest.fixture
def restaurant_tools():
    return MenuSearchTool(), WineSearchTool()
