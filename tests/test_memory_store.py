"""Tests for the session store and checkpoints."""

from datetime import timedelta

import pytest
from langgraph.checkpoint.memory import MemorySaver

from restaurant_graphs.memory import MemoryStore
from restaurant_graphs.messages import Message, ToolCall
from restaurant_graphs.utils import InvalidInputError
from restaurant_graphs.workflow import create_rag_state, create_react_state


class TestSessions:

    def test_get_unknown_key_creates_empty_state(self, memory):
        state = memory.get("thread_new")
        assert state["session_key"] == "thread_new"
        assert state["messages"] == []
        assert memory.exists("thread_new")

    def test_get_unknown_key_with_workflow_factories(self):
        react = MemoryStore(lambda key: create_react_state(key)).get("t1")
        rag = MemoryStore(lambda key: create_rag_state("", session_key=key)).get("s1")
        assert react["session_key"] == "t1" and react["messages"] == []
        assert rag["session_key"] == "s1" and rag["messages"] == []

    def test_empty_key_is_rejected(self, memory):
        with pytest.raises(InvalidInputError):
            memory.get("")

    def test_create_session_prefix(self, memory):
        key = memory.create_session("thread")
        assert key.startswith("thread_")
        assert len(key) == len("thread_") + 8

    def test_get_returns_a_copy(self, memory):
        state = memory.get("k")
        state["messages"].append(Message.user("hello"))
        assert memory.get("k")["messages"] == []

    def test_save_then_get(self, memory):
        state = memory.get("k")
        state["messages"].append(Message.user("안녕하세요"))
        checkpoint_id = memory.save(state)

        loaded = memory.get("k")
        assert loaded["last_checkpoint_id"] == checkpoint_id
        assert [m.content for m in loaded["messages"]] == ["안녕하세요"]
        assert memory.history("k") == [checkpoint_id]

    def test_save_without_key_is_rejected(self, memory):
        with pytest.raises(InvalidInputError):
            memory.save({"messages": []})

    def test_last_save_wins(self, memory):
        first = memory.get("k")
        second = memory.get("k")
        first["messages"].append(Message.user("first"))
        second["messages"].append(Message.user("second"))
        memory.save(first)
        memory.save(second)
        assert [m.content for m in memory.get("k")["messages"]] == ["second"]

    def test_delete_drops_checkpoints(self, memory):
        checkpoint_id = memory.save(memory.get("k"))
        assert memory.delete("k")
        assert not memory.exists("k")
        assert memory.restore(checkpoint_id) is None
        assert memory.checkpointer.get_tuple({"configurable": {"thread_id": "k"}}) is None
        assert not memory.delete("k")

    def test_saves_land_in_the_checkpointer(self, memory):
        state = memory.get("k")
        state["messages"].append(Message.user("와인 추천"))
        checkpoint_id = memory.save(state)

        assert isinstance(memory.checkpointer, MemorySaver)
        saved = memory.checkpointer.get_tuple(
            {"configurable": {"thread_id": "k", "checkpoint_id": checkpoint_id}}
        )
        assert saved is not None
        assert saved.config["configurable"]["checkpoint_id"] == checkpoint_id

    def test_get_returns_latest_save_not_latest_checkpoint(self, memory):
        state = memory.get("k")
        state["messages"].append(Message.user("saved"))
        saved_id = memory.save(state)
        state["messages"].append(Message.user("only checkpointed"))
        memory.checkpoint(state)

        loaded = memory.get("k")
        assert [m.content for m in loaded["messages"]] == ["saved"]
        assert loaded["last_checkpoint_id"] == saved_id
        assert len(memory.history("k")) == 2


class TestCheckpoints:

    def test_restore_round_trip_is_independent(self, memory):
        state = memory.get("k")
        state["messages"] = [Message.user("스테이크 추천"), Message.assistant("시그니처 스테이크")]
        state["tool_calls"] = [ToolCall(tool_name="search_menu", parameters={"query": "스테이크"})]

        restored = memory.restore(memory.checkpoint(state))

        assert [(m.role, m.content) for m in restored["messages"]] == [
            (m.role, m.content) for m in state["messages"]
        ]
        assert [c.id for c in restored["tool_calls"]] == [c.id for c in state["tool_calls"]]

        restored["messages"].append(Message.user("추가"))
        restored["tool_calls"][0].parameters["query"] = "changed"
        assert len(state["messages"]) == 2
        assert state["tool_calls"][0].query == "스테이크"

    def test_checkpoint_is_unaffected_by_later_changes(self, memory):
        state = memory.get("k")
        checkpoint_id = memory.checkpoint(state)
        state["messages"].append(Message.user("later"))
        assert memory.restore(checkpoint_id)["messages"] == []

    def test_restore_unknown_checkpoint(self, memory):
        assert memory.restore("ckpt_missing") is None

    def test_restore_earlier_checkpoint_of_a_thread(self, memory):
        state = memory.get("k")
        first = memory.save(state)
        state["tool_calls"] = [ToolCall(tool_name="search_wine")]
        second = memory.save(state)

        assert memory.restore(first)["tool_calls"] == []
        assert memory.restore(first)["last_checkpoint_id"] == first
        assert [c.tool_name for c in memory.restore(second)["tool_calls"]] == ["search_wine"]

    def test_checkpoint_without_session_key_is_rejected(self, memory):
        with pytest.raises(InvalidInputError):
            memory.checkpoint({"messages": []})


class TestEviction:

    def test_evicts_idle_sessions_and_old_checkpoints(self, memory, clock):
        memory.save(memory.get("old"))
        clock.advance(hours=30)
        memory.save(memory.get("fresh"))

        removed = memory.evict_older_than(timedelta(hours=24))

        assert removed == {"sessions": 1, "checkpoints": 1}
        assert memory.session_keys() == ["fresh"]
        assert len(memory.history("fresh")) == 1
        assert memory.checkpointer.get_tuple({"configurable": {"thread_id": "old"}}) is None

    def test_touching_a_session_keeps_it(self, memory, clock):
        memory.get("k")
        clock.advance(hours=20)
        memory.get("k")
        clock.advance(hours=20)
        assert memory.evict_older_than(timedelta(hours=24))["sessions"] == 0

    def test_status_counts(self, memory):
        memory.save(memory.get("a"))
        assert memory.status() == {"name": "test_memory", "sessions": 1, "checkpoints": 1}
