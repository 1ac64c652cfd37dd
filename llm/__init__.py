"""LLM client abstraction layer."""

from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall
from .factory import create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "Message",
    "LLMResponse",
    "ToolCall",
    "create_llm_client",
    "LLMProvider",
]
