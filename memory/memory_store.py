"""Durable per-conversation memories: store interface and SQLite implementation."""

import asyncio
import sqlite3
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from datetime import datetime
from typing import Optional, List

from .models import MemoryRecord, MemoryStats

logger = logging.getLogger(__name__)


class BaseMemoryStore(ABC):
    """Collection of remembered facts keyed by conversation id."""

    @abstractmethod
    async def append(self, conversation_id: str, memory_text: str) -> None:
        """Remember a fact for a conversation."""
        pass

    @abstractmethod
    async def list(self, conversation_id: str, limit: Optional[int] = None) -> List[str]:
        """List memory texts, most recent first."""
        pass

    @abstractmethod
    async def remove(self, conversation_id: str, memory_text: str) -> None:
        """Forget every memory with exactly this text."""
        pass

    @abstractmethod
    async def clear(self, conversation_id: str) -> None:
        """Forget everything remembered for a conversation."""
        pass

    @abstractmethod
    async def search(self, conversation_id: str, keyword: str) -> List[str]:
        """Find memories containing the keyword (case-insensitive)."""
        pass

    @abstractmethod
    async def stats(self, conversation_id: str) -> MemoryStats:
        """Count the memories of a conversation."""
        pass


class SQLiteMemoryStore(BaseMemoryStore):
    """SQLite-backed memory store."""

    def __init__(self, db_path: str = "data/chat.db"):
        """
        Initialize SQLite memory store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id TEXT NOT NULL,
                memory_text TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_memories_conversation ON memories(conversation_id)"
        )

        conn.commit()
        conn.close()
        logger.info(f"Memory store initialized at {self.db_path}")

    def _insert(self, record: MemoryRecord) -> None:
        conn = self._get_connection()
        conn.execute(
            "INSERT INTO memories (conversation_id, memory_text, created_at) VALUES (?, ?, ?)",
            (record.conversation_id, record.memory_text, record.created_at.isoformat())
        )
        conn.commit()
        conn.close()

    def _select(self, conversation_id: str, limit: Optional[int], keyword: Optional[str] = None) -> List[str]:
        query = "SELECT memory_text FROM memories WHERE conversation_id = ?"
        params: list = [conversation_id]
        if keyword:
            query += " AND instr(lower(memory_text), lower(?)) > 0"
            params.append(keyword)
        query += " ORDER BY id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        conn = self._get_connection()
        rows = conn.execute(query, params).fetchall()
        conn.close()
        return [row["memory_text"] for row in rows]

    def _delete(self, conversation_id: str, memory_text: Optional[str] = None) -> int:
        conn = self._get_connection()
        if memory_text is None:
            cursor = conn.execute(
                "DELETE FROM memories WHERE conversation_id = ?",
                (conversation_id,)
            )
        else:
            cursor = conn.execute(
                "DELETE FROM memories WHERE conversation_id = ? AND memory_text = ?",
                (conversation_id, memory_text)
            )
        deleted = cursor.rowcount
        conn.commit()
        conn.close()
        return deleted

    def _count(self, conversation_id: str) -> int:
        conn = self._get_connection()
        result = conn.execute(
            "SELECT COUNT(*) FROM memories WHERE conversation_id = ?",
            (conversation_id,)
        ).fetchone()
        conn.close()
        return result[0] if result else 0

    async def append(self, conversation_id: str, memory_text: str) -> None:
        record = MemoryRecord(conversation_id=conversation_id, memory_text=memory_text)
        await asyncio.to_thread(self._insert, record)
        logger.info(f"Saved memory for {conversation_id}: {memory_text[:50]}")

    async def list(self, conversation_id: str, limit: Optional[int] = None) -> List[str]:
        return await asyncio.to_thread(self._select, conversation_id, limit)

    async def remove(self, conversation_id: str, memory_text: str) -> None:
        deleted = await asyncio.to_thread(self._delete, conversation_id, memory_text)
        logger.info(f"Removed {deleted} memories from {conversation_id}: {memory_text[:50]}")

    async def clear(self, conversation_id: str) -> None:
        await asyncio.to_thread(self._delete, conversation_id)
        logger.info(f"Cleared all memories of {conversation_id}")

    async def search(self, conversation_id: str, keyword: str) -> List[str]:
        return await asyncio.to_thread(self._select, conversation_id, None, keyword)

    async def stats(self, conversation_id: str) -> MemoryStats:
        count = await asyncio.to_thread(self._count, conversation_id)
        return MemoryStats(conversation_id=conversation_id, count=count)
