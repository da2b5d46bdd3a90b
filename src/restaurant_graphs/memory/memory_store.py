"""
Session store backed by a LangGraph checkpointer.

Each session key is a checkpointer thread. Every ``save`` writes a new
checkpoint of the full state through a one-node snapshot graph, so the
stored state is serialized and later changes to the caller's dict never
reach it. Concurrent writers to the same session key are not
coordinated: the last ``save`` wins.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, TypedDict

from langgraph.checkpoint.memory import MemorySaver
from langgraph.checkpoint.serde.jsonplus import JsonPlusSerializer
from langgraph.graph import StateGraph, END

from ..utils import InvalidInputError, get_memory_logger

logger = get_memory_logger()

StateFactory = Callable[[str], Dict[str, Any]]

SNAPSHOT_NODE = "snapshot"

# Types that may appear inside a workflow state
STATE_TYPES = [
    ("restaurant_graphs.messages", "Message"),
    ("restaurant_graphs.messages", "MessageRole"),
    ("restaurant_graphs.messages", "ToolCall"),
    ("restaurant_graphs.messages", "ToolCallStatus"),
    ("restaurant_graphs.retrieval.document", "Document"),
    ("restaurant_graphs.retrieval.document", "DocumentType"),
    ("restaurant_graphs.agents.action_parser", "ActionRequest"),
    ("restaurant_graphs.workflow.state_definitions", "ProcessingStep"),
    ("restaurant_graphs.workflow.state_definitions", "ReActStep"),
]


class SnapshotState(TypedDict):
    state: Dict[str, Any]


@dataclass
class Checkpoint:
    """Index entry for one stored snapshot."""

    checkpoint_id: str
    session_key: str
    created_at: datetime


@dataclass
class MemorySession:
    session_key: str
    created_at: datetime
    last_touched: datetime
    head: Optional[str] = None
    checkpoint_ids: List[str] = field(default_factory=list)


def build_snapshot_graph(checkpointer):
    """Compile the graph whose only job is writing states to ``checkpointer``."""
    graph = StateGraph(SnapshotState)
    graph.add_node(SNAPSHOT_NODE, lambda snapshot: {})
    graph.set_entry_point(SNAPSHOT_NODE)
    graph.add_edge(SNAPSHOT_NODE, END)
    return graph.compile(checkpointer=checkpointer)


def thread_config(session_key: str, checkpoint_id: Optional[str] = None) -> Dict[str, Any]:
    configurable = {"thread_id": session_key}
    if checkpoint_id:
        configurable["checkpoint_id"] = checkpoint_id
    return {"configurable": configurable}


class MemoryStore:
    """
    Keyed persistence for workflow states.

    Args:
        state_factory: Builds an empty state for an unknown session key.
        clock: Returns the current time. Injected so eviction is testable.
        name: Label used in log lines.
        checkpointer: LangGraph saver holding the snapshots. Defaults to
            an in-process ``MemorySaver``.
    """

    def __init__(
        self,
        state_factory: StateFactory,
        clock: Callable[[], datetime] = datetime.now,
        name: str = "memory",
        checkpointer=None
    ):
        self._state_factory = state_factory
        self._clock = clock
        self.name = name
        self.checkpointer = checkpointer or MemorySaver(
            serde=JsonPlusSerializer(allowed_msgpack_modules=STATE_TYPES)
        )
        self._app = build_snapshot_graph(self.checkpointer)
        self._sessions: Dict[str, MemorySession] = {}
        self._checkpoints: Dict[str, Checkpoint] = {}
        self._lock = threading.RLock()

    def create_session(self, prefix: str = "session") -> str:
        """Return a fresh session key (not yet stored)."""
        with self._lock:
            while True:
                key = f"{prefix}_{uuid.uuid4().hex[:8]}"
                if key not in self._sessions:
                    return key

    def _touch(self, session_key: str) -> MemorySession:
        now = self._clock()
        session = self._sessions.get(session_key)
        if session is None:
            session = MemorySession(session_key=session_key, created_at=now, last_touched=now)
            self._sessions[session_key] = session
            logger.info(f"[{self.name}] created session {session_key}")
        else:
            session.last_touched = now
        return session

    def _load(self, session_key: str, checkpoint_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self._app.get_state(thread_config(session_key, checkpoint_id))
        state = snapshot.values.get("state")
        if state is None:
            return None
        state["last_checkpoint_id"] = checkpoint_id
        return state

    def get(self, session_key: str) -> Dict[str, Any]:
        """
        Return a copy of the session's state, creating it when unknown.

        Never raises for an unknown key.
        """
        if not session_key:
            raise InvalidInputError("session key must not be empty")

        with self._lock:
            session = self._touch(session_key)
            if session.head is not None:
                state = self._load(session_key, session.head)
                if state is not None:
                    return state
            return self._state_factory(session_key)

    def save(self, state: Dict[str, Any]) -> str:
        """
        Store ``state`` under its ``session_key`` and checkpoint it.

        Returns:
            The id of the checkpoint taken.
        """
        with self._lock:
            checkpoint_id = self.checkpoint(state)
            self._sessions[state["session_key"]].head = checkpoint_id

        logger.debug(f"[{self.name}] saved {state['session_key']} at checkpoint {checkpoint_id}")
        return checkpoint_id

    def checkpoint(self, state: Dict[str, Any]) -> str:
        """Snapshot ``state``; later changes to it do not affect the snapshot."""
        session_key = state.get("session_key")
        if not session_key:
            raise InvalidInputError("state has no session_key to save under")

        with self._lock:
            written = self._app.update_state(
                thread_config(session_key), {"state": dict(state)}, as_node=SNAPSHOT_NODE
            )
            checkpoint_id = written["configurable"]["checkpoint_id"]
            session = self._touch(session_key)
            session.checkpoint_ids.append(checkpoint_id)
            self._checkpoints[checkpoint_id] = Checkpoint(
                checkpoint_id=checkpoint_id,
                session_key=session_key,
                created_at=self._clock(),
            )
        return checkpoint_id

    def restore(self, checkpoint_id: str) -> Optional[Dict[str, Any]]:
        """Return an independent copy of a checkpointed state, or None."""
        with self._lock:
            checkpoint = self._checkpoints.get(checkpoint_id)
            if checkpoint is None:
                return None
            return self._load(checkpoint.session_key, checkpoint_id)

    def delete(self, session_key: str) -> bool:
        """Remove a session and all of its checkpoints."""
        with self._lock:
            session = self._sessions.pop(session_key, None)
            if session is None:
                return False
            self._drop_thread(session_key)
        logger.info(f"[{self.name}] deleted session {session_key}")
        return True

    def _drop_thread(self, session_key: str) -> None:
        self.checkpointer.delete_thread(session_key)
        for checkpoint_id in [
            cid for cid, c in self._checkpoints.items() if c.session_key == session_key
        ]:
            del self._checkpoints[checkpoint_id]

    def evict_older_than(self, age: timedelta) -> Dict[str, int]:
        """
        Drop sessions last touched before ``now - age`` and checkpoints
        created before it.

        A live session keeps its latest saved state even when that
        checkpoint is no longer restorable.

        Returns:
            Counts of removed sessions and checkpoints.
        """
        with self._lock:
            cutoff = self._clock() - age
            stale_sessions = [k for k, s in self._sessions.items() if s.last_touched < cutoff]
            stale_checkpoints = [
                cid for cid, c in self._checkpoints.items()
                if c.created_at < cutoff or c.session_key in stale_sessions
            ]

            for key in stale_sessions:
                del self._sessions[key]
                self._drop_thread(key)
            for checkpoint_id in stale_checkpoints:
                self._checkpoints.pop(checkpoint_id, None)

            for session in self._sessions.values():
                session.checkpoint_ids = [
                    cid for cid in session.checkpoint_ids if cid in self._checkpoints
                ]

        if stale_sessions or stale_checkpoints:
            logger.info(
                f"[{self.name}] evicted {len(stale_sessions)} sessions and "
                f"{len(stale_checkpoints)} checkpoints older than {age}"
            )
        return {"sessions": len(stale_sessions), "checkpoints": len(stale_checkpoints)}

    def exists(self, session_key: str) -> bool:
        with self._lock:
            return session_key in self._sessions

    def session_keys(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def history(self, session_key: str) -> List[str]:
        """Checkpoint ids of a session, oldest first."""
        with self._lock:
            session = self._sessions.get(session_key)
            return list(session.checkpoint_ids) if session else []

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "sessions": len(self._sessions),
                "checkpoints": len(self._checkpoints),
            }
