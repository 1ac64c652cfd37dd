"""Shared test doubles."""

from typing import Dict, List, Optional

import pytest

from llm.base_client import BaseLLMClient, Message, LLMResponse
from memory.history_store import BaseHistoryStore
from memory.memory_store import SQLiteMemoryStore
from memory.models import StoredTurn, HistoryStats


class ScriptedLLM(BaseLLMClient):
    """LLM client that replays canned responses and records every request."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: List[dict] = []

    async def chat(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.6,
        max_tokens: int = 4000
    ) -> LLMResponse:
        # Snapshot: the engine keeps mutating the list it passed in
        self.calls.append({
            "messages": [m.model_copy(deep=True) for m in messages],
            "model": model,
            "tools": tools,
            "temperature": temperature,
        })
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get_provider_name(self) -> str:
        return "scripted"

    def get_model_name(self) -> str:
        return "scripted-model"


class InMemoryHistoryStore(BaseHistoryStore):
    """History store kept in a dict."""

    def __init__(self):
        self.rows: Dict[str, List[StoredTurn]] = {}

    async def append(self, conversation_id, role, content, metadata=None):
        self.rows.setdefault(conversation_id, []).append(
            StoredTurn(role=role, content=content, metadata=metadata)
        )

    async def read_recent(self, conversation_id, limit=20):
        return list(self.rows.get(conversation_id, [])[-limit:])

    async def clear(self, conversation_id):
        self.rows.pop(conversation_id, None)

    async def clear_all(self):
        self.rows.clear()

    async def cleanup_older_than(self, days=30):
        return 0

    async def stats(self, conversation_id):
        return HistoryStats(
            conversation_id=conversation_id,
            message_count=len(self.rows.get(conversation_id, []))
        )


class FailingHistoryStore(InMemoryHistoryStore):
    """History store whose writes always fail."""

    async def append(self, conversation_id, role, content, metadata=None):
        raise ConnectionError("database unavailable")


@pytest.fixture
def make_llm():
    return ScriptedLLM


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def failing_history_store():
    return FailingHistoryStore()


@pytest.fixture
def memory_store(tmp_path):
    return SQLiteMemoryStore(db_path=str(tmp_path / "chat.db"))
