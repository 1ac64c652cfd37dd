"""Conversation context engine: per-room turn state, trimming and the memory tool round-trip."""

import logging
from enum import Enum
from typing import Dict, List, Optional

from llm.base_client import BaseLLMClient, Message, LLMResponse, ToolCall
from memory.context_cache import ContextCache
from memory.formatter import format_memories_for_prompt
from memory.history_store import BaseHistoryStore
from memory.memory_store import BaseMemoryStore
from memory.models import StoredTurn
from schemas.options import ResponseOptions
from .tools import Tool, ToolResult, AddMemoryTool

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    """Where a turn is in the model round-trip."""
    AWAITING_MODEL = "awaiting_model"
    TOOL_REQUESTED = "tool_requested"
    TOOL_EXECUTED = "tool_executed"
    ANSWERED = "answered"


class ConversationContextEngine:
    """
    Answers conversation turns with an LLM while owning conversation state.

    Each conversation id maps to an ordered turn list in the context cache,
    whose first element is always the system turn. The cache is hydrated
    from the history log (or built fresh), bounded to a maximum length, and
    written through to the history log turn by turn. When memory is enabled
    the model may call ``add_memory``; the engine executes the call and asks
    the model again, without tools, for the user-facing answer.

    The engine does no locking: callers must not run two turns for the same
    conversation id concurrently.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        cache: Optional[ContextCache] = None,
        history_store: Optional[BaseHistoryStore] = None,
        memory_store: Optional[BaseMemoryStore] = None,
        max_tokens: int = 4000
    ):
        """
        Initialize the engine.

        Args:
            llm_client: Completion client
            cache: Working-set cache (a new empty one when omitted)
            history_store: History log, required for use_persistence
            memory_store: Memory store, required for use_memory
            max_tokens: Completion token limit per model call
        """
        self.llm_client = llm_client
        self.cache = cache if cache is not None else ContextCache()
        self.history_store = history_store
        self.memory_store = memory_store
        self.max_tokens = max_tokens

        self.tools: Dict[str, Tool] = {}
        if memory_store is not None:
            memory_tool = AddMemoryTool(memory_store)
            self.tools[memory_tool.name] = memory_tool

    async def respond(
        self,
        utterance: str,
        conversation_id: str,
        options: Optional[ResponseOptions] = None
    ) -> Optional[str]:
        """
        Answer one user utterance in a conversation.

        Args:
            utterance: User text, speaker label already embedded ("Alice: hi")
            conversation_id: Conversation identifier, usually the room id
            options: Per-call options (defaults when omitted)

        Returns:
            The model's reply text, or None when the model gave no content

        Raises:
            ValueError: If options need a store the engine was built without
            Exception: Completion and store failures propagate unchanged
        """
        options = options or ResponseOptions()
        self._check_options(options)

        messages = await self._ensure_conversation(conversation_id, options)
        await self._append(conversation_id, messages, Message(role="user", content=utterance), options)
        messages = self._trim(conversation_id, options.max_history_length)

        tools = self._tool_definitions() if options.use_memory else None
        state = TurnState.AWAITING_MODEL
        response: Optional[LLMResponse] = None

        while state != TurnState.ANSWERED:
            if state == TurnState.AWAITING_MODEL:
                response = await self._complete(messages, options, tools)
                # Tool calls only count when tools were advertised on this call
                if tools and response.tool_calls:
                    state = TurnState.TOOL_REQUESTED
                else:
                    state = TurnState.ANSWERED

            elif state == TurnState.TOOL_REQUESTED:
                await self._run_tool_calls(conversation_id, messages, response, options)
                state = TurnState.TOOL_EXECUTED

            elif state == TurnState.TOOL_EXECUTED:
                tools = None
                state = TurnState.AWAITING_MODEL

        reply = response.content
        if not reply:
            # An empty assistant turn is rejected by completion APIs on the next call
            logger.warning(f"Model returned no content for {conversation_id}; answer not recorded")
            return reply

        await self._append(conversation_id, messages, Message(role="assistant", content=reply), options)
        self._trim(conversation_id, options.max_history_length)
        return reply

    async def reset_one(self, conversation_id: str, also_clear_store: bool = False) -> None:
        """Forget a conversation's working set, optionally clearing its history log."""
        self.cache.delete(conversation_id)
        logger.info(f"Reset conversation {conversation_id}")

        if also_clear_store and self.history_store is not None:
            try:
                await self.history_store.clear(conversation_id)
            except Exception as e:
                logger.error(f"Failed to clear history of {conversation_id}: {e}")

    async def reset_all(self, also_clear_store: bool = False) -> None:
        """Forget every working set, optionally clearing the whole history log."""
        self.cache.clear()
        logger.info("Reset all conversations")

        if also_clear_store and self.history_store is not None:
            try:
                await self.history_store.clear_all()
            except Exception as e:
                logger.error(f"Failed to clear conversation history: {e}")

    def _check_options(self, options: ResponseOptions) -> None:
        if options.use_persistence and self.history_store is None:
            raise ValueError("use_persistence requires a history store")
        if options.use_memory and self.memory_store is None:
            raise ValueError("use_memory requires a memory store")

    def _tool_definitions(self) -> List[Dict]:
        return [tool.get_definition() for tool in self.tools.values()]

    async def _ensure_conversation(self, conversation_id: str, options: ResponseOptions) -> List[Message]:
        """Return the cached turn list, hydrating it on first use."""
        messages = self.cache.get(conversation_id)
        if messages is not None:
            return messages

        if options.use_persistence:
            stored = await self.history_store.read_recent(conversation_id, options.max_history_length)
            if stored:
                messages = [self._from_stored(turn) for turn in stored]
                if messages[0].role != "system":
                    # Older rows (including the system turn) fell outside the window
                    messages.insert(0, await self._build_system_turn(conversation_id, options))
                messages = self._drop_orphan_tool_turns(messages)
                logger.info(f"Hydrated {conversation_id} with {len(messages)} turns from history")
            else:
                messages = [await self._build_system_turn(conversation_id, options)]
                await self._persist(conversation_id, messages[0])
                logger.info(f"Started persisted conversation {conversation_id}")
        else:
            messages = [await self._build_system_turn(conversation_id, options)]
            logger.info(f"Started conversation {conversation_id}")

        self.cache.set(conversation_id, messages)
        return messages

    async def _build_system_turn(self, conversation_id: str, options: ResponseOptions) -> Message:
        content = options.system_prompt
        if options.use_memory:
            # Store lists newest first; the prompt reads oldest first
            memories = await self.memory_store.list(conversation_id)
            content += format_memories_for_prompt(list(reversed(memories)))
        return Message(role="system", content=content)

    @staticmethod
    def _from_stored(turn: StoredTurn) -> Message:
        metadata = turn.metadata or {}
        tool_calls = [ToolCall(**tc) for tc in metadata.get("tool_calls", [])]
        return Message(
            role=turn.role,
            content=turn.content,
            tool_call_id=metadata.get("tool_call_id"),
            tool_calls=tool_calls or None
        )

    def _trim(self, conversation_id: str, max_history_length: int) -> List[Message]:
        """Keep the system turn plus the most recent max_history_length - 1 turns."""
        messages = self.cache.get(conversation_id)
        if len(messages) > max_history_length:
            messages = [messages[0]] + messages[-(max_history_length - 1):]
            messages = self._drop_orphan_tool_turns(messages)
            self.cache.set(conversation_id, messages)
        return messages

    @staticmethod
    def _drop_orphan_tool_turns(messages: List[Message]) -> List[Message]:
        """Drop tool turns that lost their requesting assistant turn to the window cut."""
        head = 1
        while head < len(messages) and messages[head].role == "tool":
            head += 1
        if head == 1:
            return messages
        logger.debug(f"Dropping {head - 1} orphaned tool turns")
        return [messages[0]] + messages[head:]

    async def _complete(
        self,
        messages: List[Message],
        options: ResponseOptions,
        tools: Optional[List[Dict]]
    ) -> LLMResponse:
        return await self.llm_client.chat(
            messages=messages,
            model=options.model,
            tools=tools,
            temperature=options.temperature,
            max_tokens=self.max_tokens
        )

    async def _run_tool_calls(
        self,
        conversation_id: str,
        messages: List[Message],
        response: LLMResponse,
        options: ResponseOptions
    ) -> None:
        """Execute each call, then record the invocation turn with its results."""
        # Nothing is recorded until every call has run, so a failing tool
        # cannot leave an unanswered invocation in the cache or history log
        tool_turns = []
        for tool_call in response.tool_calls:
            tool = self.tools.get(tool_call.name)
            if tool is None:
                logger.error(f"Model requested unknown tool '{tool_call.name}'")
                result = ToolResult(
                    tool_name=tool_call.name,
                    success=False,
                    error=f"Unknown tool '{tool_call.name}'"
                )
            else:
                result = await tool.execute(conversation_id, tool_call.arguments)

            tool_turns.append(Message(
                role="tool",
                content=self._format_observation(result),
                tool_call_id=tool_call.id
            ))

        await self._append(
            conversation_id,
            messages,
            Message(role="assistant", content=response.content, tool_calls=response.tool_calls),
            options
        )
        for tool_turn in tool_turns:
            await self._append(conversation_id, messages, tool_turn, options)

    @staticmethod
    def _format_observation(result: ToolResult) -> str:
        """Format tool result for LLM consumption."""
        if not result.success:
            return f"Error: {result.error}"
        return str(result.result)

    async def _append(
        self,
        conversation_id: str,
        messages: List[Message],
        message: Message,
        options: ResponseOptions
    ) -> None:
        messages.append(message)
        if options.use_persistence:
            await self._persist(conversation_id, message)

    async def _persist(self, conversation_id: str, message: Message) -> None:
        """Write a turn to the history log. Failures are logged, never raised."""
        metadata = None
        if message.tool_calls:
            metadata = {"tool_calls": [tc.model_dump() for tc in message.tool_calls]}
        elif message.tool_call_id:
            metadata = {"tool_call_id": message.tool_call_id}

        try:
            await self.history_store.append(
                conversation_id,
                message.role,
                message.content or "",
                metadata
            )
        except Exception as e:
            logger.error(f"Failed to persist {message.role} turn for {conversation_id}: {e}")
