"""Persistence data models."""

from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class StoredTurn(BaseModel):
    """A conversation turn as kept in the history log."""
    role: str  # "system", "user", "assistant" or "tool"
    content: str
    metadata: Optional[Dict[str, Any]] = None  # tool_calls / tool_call_id bookkeeping
    created_at: datetime = Field(default_factory=datetime.now)


class MemoryRecord(BaseModel):
    """A durable fact remembered for one conversation."""
    conversation_id: str
    memory_text: str
    created_at: datetime = Field(default_factory=datetime.now)


class HistoryStats(BaseModel):
    """History log statistics for a conversation."""
    conversation_id: str
    message_count: int = 0


class MemoryStats(BaseModel):
    """Memory statistics for a conversation."""
    conversation_id: str
    count: int = 0
