"""OpenAI-compatible chat completion client (OpenAI, Moonshot/Kimi)."""

import os
import logging
from typing import Optional, List, Dict, Any

from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """Client for any endpoint speaking the OpenAI chat completions API."""

    DEFAULT_MODEL = "kimi-k2-turbo-preview"
    DEFAULT_BASE_URL = "https://api.moonshot.cn/v1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None
    ):
        """
        Initialize OpenAI-compatible client.

        Args:
            api_key: API key (falls back to MOONSHOT_API_KEY, then OPENAI_API_KEY)
            model: Default model (default: kimi-k2-turbo-preview)
            base_url: API base URL (falls back to OPENAI_BASE_URL, then Moonshot)
        """
        self.api_key = (
            api_key
            or os.environ.get("MOONSHOT_API_KEY")
            or os.environ.get("OPENAI_API_KEY")
        )
        self.model = model or self.DEFAULT_MODEL
        self.base_url = base_url or os.environ.get("OPENAI_BASE_URL") or self.DEFAULT_BASE_URL
        self.client = None

        if self.api_key:
            from openai import AsyncOpenAI
            self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
            logger.info(f"OpenAI-compatible client initialized: {self.base_url} ({self.model})")
        else:
            logger.warning("No OpenAI-compatible API key provided")

    @staticmethod
    def _to_openai_message(msg: Message) -> Dict[str, Any]:
        openai_msg: Dict[str, Any] = {"role": msg.role, "content": msg.content}
        if msg.tool_call_id:
            openai_msg["tool_call_id"] = msg.tool_call_id
        if msg.tool_calls:
            openai_msg["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": tc.arguments
                    }
                }
                for tc in msg.tool_calls
            ]
        return openai_msg

    async def chat(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.6,
        max_tokens: int = 4000
    ) -> LLMResponse:
        """Send chat completion request to the OpenAI-compatible endpoint."""
        if not self.client:
            raise RuntimeError("OpenAI client not initialized. Check API key.")

        kwargs = {
            "model": model or self.model,
            "messages": [self._to_openai_message(msg) for msg in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**kwargs)

            choice = response.choices[0]

            # Arguments stay JSON-encoded; the tool decodes and validates them
            tool_calls = None
            if choice.message.tool_calls:
                tool_calls = [
                    ToolCall(
                        id=tc.id,
                        name=tc.function.name,
                        arguments=tc.function.arguments or ""
                    )
                    for tc in choice.message.tool_calls
                ]

            usage = None
            if response.usage:
                usage = {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                }

            return LLMResponse(
                content=choice.message.content,
                tool_calls=tool_calls,
                usage=usage,
                finish_reason=choice.finish_reason
            )

        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "openai"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
