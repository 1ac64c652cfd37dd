"""Tools the model may call while answering a turn."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from pydantic import BaseModel

from memory.memory_store import BaseMemoryStore

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Result from tool execution."""
    tool_name: str
    success: bool
    result: Any = None
    error: Optional[str] = None


class Tool(ABC):
    """Abstract base class for tools."""
    name: str
    description: str
    parameters: Dict[str, Any]

    @abstractmethod
    async def execute(self, conversation_id: str, arguments: str) -> ToolResult:
        """Execute the tool with its JSON-encoded arguments."""
        pass

    def get_definition(self) -> Dict:
        """Get OpenAI-compatible tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters
            }
        }


class MemoryToolArgsError(ValueError):
    """Raised when add_memory arguments do not match its schema."""


class MemoryToolArgs(BaseModel):
    """Decoded arguments of the add_memory tool."""
    text: str

    @classmethod
    def parse(cls, raw: str) -> "MemoryToolArgs":
        """
        Decode the model's argument payload.

        Raises:
            MemoryToolArgsError: If the payload is not a JSON object with a
                non-blank string ``memory_text`` field
        """
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MemoryToolArgsError(f"arguments are not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise MemoryToolArgsError("arguments must be a JSON object")

        text = payload.get("memory_text")
        if not isinstance(text, str):
            raise MemoryToolArgsError("memory_text must be a string")
        if not text.strip():
            raise MemoryToolArgsError("memory_text must not be empty")

        return cls(text=text.strip())


class AddMemoryTool(Tool):
    """Tool that lets the model remember a durable fact about the chat."""

    name = "add_memory"
    description = """Save an important piece of information about this group chat to long-term memory.
Use this for durable facts worth recalling in future conversations:
member preferences, important dates, group rules, who is who.
Do not use it for small talk or information that is only relevant right now."""

    parameters = {
        "type": "object",
        "properties": {
            "memory_text": {
                "type": "string",
                "description": "The fact to remember, as a short self-contained sentence"
            }
        },
        "required": ["memory_text"]
    }

    def __init__(self, memory_store: BaseMemoryStore):
        """
        Initialize memory tool.

        Args:
            memory_store: Store that receives remembered facts
        """
        self.memory_store = memory_store

    async def execute(self, conversation_id: str, arguments: str) -> ToolResult:
        """Remember a fact. Store failures propagate to the caller."""
        try:
            args = MemoryToolArgs.parse(arguments)
        except MemoryToolArgsError as e:
            logger.error(f"Rejected {self.name} call for {conversation_id}: {e}")
            return ToolResult(
                tool_name=self.name,
                success=False,
                error=str(e)
            )

        await self.memory_store.append(conversation_id, args.text)
        return ToolResult(
            tool_name=self.name,
            success=True,
            result="Memory saved."
        )
