"""Conversation context engine and the tools it exposes to the model."""

from .tools import Tool, ToolResult, AddMemoryTool, MemoryToolArgs, MemoryToolArgsError
from .context_engine import ConversationContextEngine, TurnState

__all__ = [
    "Tool",
    "ToolResult",
    "AddMemoryTool",
    "MemoryToolArgs",
    "MemoryToolArgsError",
    "ConversationContextEngine",
    "TurnState",
]
