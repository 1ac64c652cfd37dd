"""Main orchestrator wiring the LLM client, stores, engine and group message handler."""

import logging
from typing import List, Optional

from config.settings import Settings
from schemas.events import IncomingMessage, OutgoingReply
from schemas.options import ResponseOptions

# LLM components
from llm.factory import create_llm_client, LLMProvider
from llm.base_client import BaseLLMClient

# Conversation state
from memory.context_cache import ContextCache
from memory.history_store import BaseHistoryStore, SQLiteHistoryStore
from memory.memory_store import BaseMemoryStore, SQLiteMemoryStore
from memory.models import HistoryStats, MemoryStats

from engine.context_engine import ConversationContextEngine
from bot.handler import GroupMessageHandler, compile_room_matchers

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """Builds the assistant from settings and exposes chat and admin operations."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[BaseLLMClient] = None,
        history_store: Optional[BaseHistoryStore] = None,
        memory_store: Optional[BaseMemoryStore] = None
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings
            llm_client: Prebuilt LLM client (built from settings when omitted)
            history_store: Prebuilt history store (SQLite at db_path when omitted)
            memory_store: Prebuilt memory store (SQLite at db_path when omitted)
        """
        self.settings = settings or Settings()
        self.options: ResponseOptions = self.settings.to_response_options()

        self.llm_client = llm_client or self._init_llm_client()

        self.history_store = history_store
        self.memory_store = memory_store
        self._init_stores()

        self.cache = ContextCache()
        self.engine = ConversationContextEngine(
            llm_client=self.llm_client,
            cache=self.cache,
            history_store=self.history_store,
            memory_store=self.memory_store,
            max_tokens=self.settings.max_tokens
        )

        self.handler = GroupMessageHandler(
            engine=self.engine,
            options=self.options,
            target_rooms=compile_room_matchers(self.settings.target_rooms),
            reply_only_when_mentioned=self.settings.reply_only_when_mentioned,
            reply_to_self=self.settings.reply_to_self,
            apology_reply=self.settings.apology_reply
        )

    def _init_llm_client(self) -> BaseLLMClient:
        """Initialize LLM client based on settings."""
        provider = LLMProvider(self.settings.llm_provider)
        client = create_llm_client(
            provider=provider,
            api_key=self.settings.get_llm_api_key(),
            model=self.settings.llm_model,
            base_url=self.settings.openai_base_url
        )
        logger.info(
            f"LLM client initialized: {self.settings.llm_provider} "
            f"({client.get_model_name()})"
        )
        return client

    def _init_stores(self):
        """Initialize SQLite stores for whatever was not injected."""
        if not (self.settings.use_persistence or self.settings.use_memory):
            return

        try:
            if self.history_store is None:
                self.history_store = SQLiteHistoryStore(db_path=self.settings.db_path)
            if self.memory_store is None:
                self.memory_store = SQLiteMemoryStore(db_path=self.settings.db_path)
        except Exception as e:
            logger.error(f"Failed to initialize stores, running in-memory only: {e}")
            self.history_store = None
            self.memory_store = None

        if self.history_store is None:
            self.options.use_persistence = False
        if self.memory_store is None:
            self.options.use_memory = False

    async def chat(self, utterance: str, conversation_id: str) -> Optional[str]:
        """Answer an utterance directly, bypassing room filters."""
        return await self.engine.respond(utterance, conversation_id, self.options)

    async def handle_message(self, message: IncomingMessage) -> Optional[OutgoingReply]:
        """Answer an IM event the way the group bot would."""
        return await self.handler.handle(message)

    async def reset_conversation(self, conversation_id: str, clear_history: bool = False) -> None:
        await self.engine.reset_one(conversation_id, also_clear_store=clear_history)

    async def reset_all_conversations(self, clear_history: bool = False) -> None:
        await self.engine.reset_all(also_clear_store=clear_history)

    def _require_memory_store(self) -> BaseMemoryStore:
        if self.memory_store is None:
            raise RuntimeError("Memory store is not configured")
        return self.memory_store

    def _require_history_store(self) -> BaseHistoryStore:
        if self.history_store is None:
            raise RuntimeError("History store is not configured")
        return self.history_store

    async def list_memories(self, conversation_id: str, limit: Optional[int] = None) -> List[str]:
        return await self._require_memory_store().list(conversation_id, limit)

    async def search_memories(self, conversation_id: str, keyword: str) -> List[str]:
        return await self._require_memory_store().search(conversation_id, keyword)

    async def forget_memory(self, conversation_id: str, memory_text: str) -> None:
        await self._require_memory_store().remove(conversation_id, memory_text)

    async def clear_memories(self, conversation_id: str) -> None:
        await self._require_memory_store().clear(conversation_id)

    async def memory_stats(self, conversation_id: str) -> MemoryStats:
        return await self._require_memory_store().stats(conversation_id)

    async def history_stats(self, conversation_id: str) -> HistoryStats:
        return await self._require_history_store().stats(conversation_id)

    async def cleanup_history(self, days: Optional[int] = None) -> int:
        """Delete history rows older than the retention period."""
        days = days if days is not None else self.settings.history_retention_days
        return await self._require_history_store().cleanup_older_than(days)
