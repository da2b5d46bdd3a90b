"""Session memory and checkpoints."""

from .memory_store import Checkpoint, MemorySession, MemoryStore

__all__ = ["Checkpoint", "MemorySession", "MemoryStore"]
