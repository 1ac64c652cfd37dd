"""Conversation history log: store interface and SQLite implementation."""

import asyncio
import sqlite3
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from .models import StoredTurn, HistoryStats

logger = logging.getLogger(__name__)


class BaseHistoryStore(ABC):
    """Durable, append-only log of conversation turns."""

    @abstractmethod
    async def append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Append one turn to the end of a conversation's log."""
        pass

    @abstractmethod
    async def read_recent(self, conversation_id: str, limit: int = 20) -> List[StoredTurn]:
        """Read the most recent turns, oldest first."""
        pass

    @abstractmethod
    async def clear(self, conversation_id: str) -> None:
        """Delete every turn of one conversation."""
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every turn of every conversation."""
        pass

    @abstractmethod
    async def cleanup_older_than(self, days: int = 30) -> int:
        """Delete turns older than the given number of days."""
        pass

    @abstractmethod
    async def stats(self, conversation_id: str) -> HistoryStats:
        """Count the turns logged for a conversation."""
        pass


class SQLiteHistoryStore(BaseHistoryStore):
    """SQLite-backed conversation history log."""

    def __init__(self, db_path: str = "data/chat.db"):
        """
        Initialize SQLite history store.

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
            CREATE TABLE IF NOT EXISTS conversation_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id TEXT NOT NULL,
                role TEXT NOT NULL CHECK(role IN ('system', 'user', 'assistant', 'tool')),
                content TEXT NOT NULL,
                metadata TEXT,
                created_at TEXT NOT NULL
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_history_conversation ON conversation_history(conversation_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_history_created_at ON conversation_history(created_at)"
        )

        conn.commit()
        conn.close()
        logger.info(f"History store initialized at {self.db_path}")

    def _append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]]
    ) -> None:
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO conversation_history (conversation_id, role, content, metadata, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                conversation_id,
                role,
                content,
                json.dumps(metadata, ensure_ascii=False) if metadata else None,
                datetime.now().isoformat()
            )
        )
        conn.commit()
        conn.close()

    def _read_recent(self, conversation_id: str, limit: int) -> List[StoredTurn]:
        conn = self._get_connection()
        cursor = conn.execute(
            """
            SELECT role, content, metadata, created_at
            FROM conversation_history
            WHERE conversation_id = ?
            ORDER BY id DESC
            LIMIT ?
            """,
            (conversation_id, limit)
        )
        rows = cursor.fetchall()
        conn.close()

        turns = []
        for row in reversed(rows):  # Reverse to get chronological order
            turns.append(StoredTurn(
                role=row["role"],
                content=row["content"],
                metadata=json.loads(row["metadata"]) if row["metadata"] else None,
                created_at=datetime.fromisoformat(row["created_at"])
            ))
        return turns

    def _delete(self, where: str = "", params: tuple = ()) -> int:
        conn = self._get_connection()
        cursor = conn.execute(f"DELETE FROM conversation_history {where}", params)
        deleted = cursor.rowcount
        conn.commit()
        conn.close()
        return deleted

    def _count(self, conversation_id: str) -> int:
        conn = self._get_connection()
        result = conn.execute(
            "SELECT COUNT(*) FROM conversation_history WHERE conversation_id = ?",
            (conversation_id,)
        ).fetchone()
        conn.close()
        return result[0] if result else 0

    async def append(
        self,
        conversation_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        await asyncio.to_thread(self._append, conversation_id, role, content, metadata)

    async def read_recent(self, conversation_id: str, limit: int = 20) -> List[StoredTurn]:
        return await asyncio.to_thread(self._read_recent, conversation_id, limit)

    async def clear(self, conversation_id: str) -> None:
        await asyncio.to_thread(self._delete, "WHERE conversation_id = ?", (conversation_id,))
        logger.info(f"Cleared history of conversation {conversation_id}")

    async def clear_all(self) -> None:
        await asyncio.to_thread(self._delete)
        logger.info("Cleared all conversation history")

    async def cleanup_older_than(self, days: int = 30) -> int:
        cutoff = (datetime.now() - timedelta(days=days)).isoformat()
        deleted = await asyncio.to_thread(self._delete, "WHERE created_at < ?", (cutoff,))
        logger.info(f"Removed {deleted} history rows older than {days} days")
        return deleted

    async def stats(self, conversation_id: str) -> HistoryStats:
        count = await asyncio.to_thread(self._count, conversation_id)
        return HistoryStats(conversation_id=conversation_id, message_count=count)
