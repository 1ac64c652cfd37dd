"""Conversation state: working-set cache, history log and durable memories."""

from .models import StoredTurn, MemoryRecord, HistoryStats, MemoryStats
from .context_cache import ContextCache
from .formatter import format_memories_for_prompt, MEMORY_HEADER
from .history_store import BaseHistoryStore, SQLiteHistoryStore
from .memory_store import BaseMemoryStore, SQLiteMemoryStore

__all__ = [
    "StoredTurn",
    "MemoryRecord",
    "HistoryStats",
    "MemoryStats",
    "ContextCache",
    "format_memories_for_prompt",
    "MEMORY_HEADER",
    "BaseHistoryStore",
    "SQLiteHistoryStore",
    "BaseMemoryStore",
    "SQLiteMemoryStore",
]
