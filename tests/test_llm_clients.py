"""Tests for the LLM client adapters."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from llm.anthropic_client import AnthropicClient
from llm.base_client import Message, ToolCall
from llm.factory import create_llm_client, LLMProvider
from llm.openai_client import OpenAIClient

MEMORY_TOOL = {
    "type": "function",
    "function": {
        "name": "add_memory",
        "description": "Remember a fact",
        "parameters": {
            "type": "object",
            "properties": {"memory_text": {"type": "string"}},
            "required": ["memory_text"],
        },
    },
}


def openai_response(content=None, tool_calls=None, finish_reason="stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(
            message=SimpleNamespace(content=content, tool_calls=tool_calls),
            finish_reason=finish_reason,
        )],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


class TestOpenAIClient:
    """Test the OpenAI-compatible adapter."""

    @pytest.fixture(autouse=True)
    def setup(self, monkeypatch):
        monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
        with patch("openai.AsyncOpenAI") as async_openai:
            self.sdk = async_openai.return_value
            self.sdk.chat.completions.create = AsyncMock()
            self.client = OpenAIClient(api_key="test-key")
            self.async_openai = async_openai
            yield

    def test_defaults_to_moonshot(self):
        """Test the default endpoint and model."""
        assert self.client.get_model_name() == "kimi-k2-turbo-preview"
        self.async_openai.assert_called_once_with(
            api_key="test-key",
            base_url="https://api.moonshot.cn/v1"
        )

    def test_plain_completion(self):
        """Test a text answer and the request shape."""
        self.sdk.chat.completions.create.return_value = openai_response("Hello Alice")

        response = asyncio.run(self.client.chat(
            [Message(role="system", content="Be terse."), Message(role="user", content="Alice: hi")],
            temperature=0.3,
        ))

        assert response.content == "Hello Alice"
        assert response.tool_calls is None
        assert response.usage["total_tokens"] == 15

        kwargs = self.sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "kimi-k2-turbo-preview"
        assert kwargs["temperature"] == 0.3
        assert "tools" not in kwargs
        assert kwargs["messages"][1] == {"role": "user", "content": "Alice: hi"}

    def test_tools_use_auto_choice(self):
        """Test that advertised tools request automatic tool choice."""
        self.sdk.chat.completions.create.return_value = openai_response("ok")

        asyncio.run(self.client.chat([Message(role="user", content="hi")], model="moonshot-v1-8k", tools=[MEMORY_TOOL]))

        kwargs = self.sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "moonshot-v1-8k"
        assert kwargs["tools"] == [MEMORY_TOOL]
        assert kwargs["tool_choice"] == "auto"

    def test_tool_calls_keep_raw_arguments(self):
        """Test that tool call arguments are passed on undecoded."""
        raw = '{"memory_text": "Bob likes tea"}'
        self.sdk.chat.completions.create.return_value = openai_response(
            tool_calls=[SimpleNamespace(
                id="call_1",
                function=SimpleNamespace(name="add_memory", arguments=raw),
            )],
            finish_reason="tool_calls",
        )

        response = asyncio.run(self.client.chat([Message(role="user", content="hi")], tools=[MEMORY_TOOL]))

        assert response.content is None
        assert response.tool_calls == [ToolCall(id="call_1", name="add_memory", arguments=raw)]

    def test_tool_turns_serialized(self):
        """Test assistant tool-call and tool turns in the request."""
        self.sdk.chat.completions.create.return_value = openai_response("done")
        messages = [
            Message(role="assistant", content="", tool_calls=[
                ToolCall(id="call_1", name="add_memory", arguments='{"memory_text": "X"}')
            ]),
            Message(role="tool", content="Memory saved.", tool_call_id="call_1"),
        ]

        asyncio.run(self.client.chat(messages))

        sent = self.sdk.chat.completions.create.call_args.kwargs["messages"]
        assert sent[0]["tool_calls"][0]["function"]["arguments"] == '{"memory_text": "X"}'
        assert sent[1]["tool_call_id"] == "call_1"

    def test_api_errors_propagate(self):
        self.sdk.chat.completions.create.side_effect = ConnectionError("down")

        with pytest.raises(ConnectionError):
            asyncio.run(self.client.chat([Message(role="user", content="hi")]))


class TestUnconfiguredClients:
    """Test clients without API keys."""

    def test_openai_without_key_raises_on_chat(self, monkeypatch):
        monkeypatch.delenv("MOONSHOT_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = OpenAIClient()

        with pytest.raises(RuntimeError):
            asyncio.run(client.chat([Message(role="user", content="hi")]))

    def test_anthropic_without_key_raises_on_chat(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        client = AnthropicClient()

        with pytest.raises(RuntimeError):
            asyncio.run(client.chat([Message(role="user", content="hi")]))


class TestAnthropicClient:
    """Test the Anthropic adapter."""

    @pytest.fixture(autouse=True)
    def setup(self):
        with patch("anthropic.AsyncAnthropic") as async_anthropic:
            self.sdk = async_anthropic.return_value
            self.sdk.messages.create = AsyncMock()
            self.client = AnthropicClient(api_key="test-key")
            yield

    def test_split_messages(self):
        """Test system extraction and tool block conversion."""
        system, converted = AnthropicClient._split_messages([
            Message(role="system", content="Be terse."),
            Message(role="user", content="Alice: remember X"),
            Message(role="assistant", content=None, tool_calls=[
                ToolCall(id="tu_1", name="add_memory", arguments='{"memory_text": "X"}')
            ]),
            Message(role="tool", content="Memory saved.", tool_call_id="tu_1"),
        ])

        assert system == "Be terse."
        assert converted[0] == {"role": "user", "content": "Alice: remember X"}
        assert converted[1]["content"][0]["input"] == {"memory_text": "X"}
        assert converted[2]["content"][0]["type"] == "tool_result"
        assert converted[2]["content"][0]["tool_use_id"] == "tu_1"

    def test_tool_use_response(self):
        """Test that tool_use blocks come back as JSON-encoded tool calls."""
        self.sdk.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="tool_use", id="tu_1", name="add_memory", input={"memory_text": "X"})],
            usage=SimpleNamespace(input_tokens=7, output_tokens=3),
            stop_reason="tool_use",
        )

        response = asyncio.run(self.client.chat([Message(role="user", content="hi")], tools=[MEMORY_TOOL]))

        assert response.content is None
        assert json.loads(response.tool_calls[0].arguments) == {"memory_text": "X"}
        kwargs = self.sdk.messages.create.call_args.kwargs
        assert kwargs["tools"][0]["name"] == "add_memory"
        assert kwargs["tools"][0]["input_schema"] == MEMORY_TOOL["function"]["parameters"]

    def test_text_response(self):
        self.sdk.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="Hello")],
            usage=SimpleNamespace(input_tokens=7, output_tokens=3),
            stop_reason="end_turn",
        )

        response = asyncio.run(self.client.chat([Message(role="user", content="hi")]))

        assert response.content == "Hello"
        assert response.usage["total_tokens"] == 10


class TestFactory:
    """Test provider selection."""

    def test_creates_openai_client(self):
        with patch("openai.AsyncOpenAI"):
            client = create_llm_client(LLMProvider.OPENAI, api_key="k", base_url="https://api.openai.com/v1")

        assert isinstance(client, OpenAIClient)
        assert client.base_url == "https://api.openai.com/v1"

    def test_creates_anthropic_client(self):
        with patch("anthropic.AsyncAnthropic"):
            client = create_llm_client(LLMProvider.ANTHROPIC, api_key="k")

        assert isinstance(client, AnthropicClient)
        assert client.get_provider_name() == "anthropic"
