"""
Unit tests for the CompletionClient tool-calling loop.

Tests cover:
- Plain answers and payload shape
- Tool call execution and conversation bookkeeping
- Per-call tool failures reported back to the model
- The tool-unsupported fallback
- Iteration limit, empty responses and provider errors
- Account status and model metadata lookups
"""

import json
from typing import Any, Mapping
from unittest.mock import AsyncMock, MagicMock

import pytest

from ailand.config.resolver import ConfigResolver
from ailand.config.settings import OpenRouterSettings, Settings
from ailand.llm.client import INVALID_TOOL_CALL_MESSAGE, CompletionClient, is_tool_unsupported_error
from ailand.llm.errors import (
    ConfigurationError,
    EmptyResponse,
    MaxIterationsExceeded,
    ProviderError,
    TransportError,
)
from ailand.llm.models import Message, ModelKind, Role, ToolDefinition
from ailand.llm.transport import OpenRouterTransport
from ailand.tools.base import Tool
from ailand.tools.registry import ToolRegistry


# ---------------------------------------------------------------------------
# Helpers for building API responses
# ---------------------------------------------------------------------------

def _text_response(content: str | None) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _tool_call(name: str, arguments: Any, call_id: str = "call_1") -> dict:
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


def _tool_call_response(*calls: dict) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": None, "tool_calls": list(calls)}}]}


def _payload(transport: MagicMock, call_index: int) -> dict:
    """The payload sent on the n-th POST."""
    return transport.post_chat_completion.call_args_list[call_index].args[1]


class EchoTool(Tool):
    """Returns its 'text' argument; records every call."""

    def __init__(self, name: str = "echo"):
        self._name = name
        self.calls: list[tuple[dict, int]] = []

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self._name,
            description="Echo the text back.",
            parameters={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
        )

    async def execute(self, arguments: Mapping[str, Any], scope: int = 0) -> str:
        self.calls.append((dict(arguments), scope))
        return f"echo: {arguments['text']}"


class FailingTool(EchoTool):
    async def execute(self, arguments: Mapping[str, Any], scope: int = 0) -> str:
        raise RuntimeError("tool exploded")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def resolver():
    settings = Settings(openrouter=OpenRouterSettings(api_key="test-key", thinking_model="think/model"))
    return ConfigResolver(settings)


@pytest.fixture
def transport():
    transport = MagicMock(spec=OpenRouterTransport)
    transport.post_chat_completion = AsyncMock()
    transport.get_key_info = AsyncMock()
    transport.get_models = AsyncMock()
    return transport


@pytest.fixture
def echo_tool():
    return EchoTool()


@pytest.fixture
def client(transport, resolver, echo_tool):
    registry = ToolRegistry({"echo": echo_tool, "broken": FailingTool("broken")})
    return CompletionClient(transport, resolver, registry)


@pytest.fixture
def messages():
    return [Message.system("You are a designer."), Message.user("Make a page.")]


# ---------------------------------------------------------------------------
# Test Classes
# ---------------------------------------------------------------------------

class TestInitialization:

    def test_default_iteration_budget(self, transport, resolver):
        assert CompletionClient(transport, resolver).max_iterations == 5

    def test_rejects_non_positive_budget(self, transport, resolver):
        with pytest.raises(ValueError):
            CompletionClient(transport, resolver, max_iterations=0)

    def test_empty_registry_by_default(self, transport, resolver):
        assert len(CompletionClient(transport, resolver).registry) == 0


class TestPlainAnswers:

    @pytest.mark.asyncio
    async def test_returns_stripped_content(self, client, transport, messages):
        transport.post_chat_completion.return_value = _text_response("  <div>Hi</div>\n")

        result = await client.get_completion(messages, ModelKind.THINKING)

        assert result == "<div>Hi</div>"
        assert transport.post_chat_completion.await_count == 1

    @pytest.mark.asyncio
    async def test_payload_uses_resolved_key_and_model(self, client, transport, messages):
        transport.post_chat_completion.return_value = _text_response("ok")

        await client.get_completion(messages, ModelKind.THINKING)

        api_key, payload = transport.post_chat_completion.call_args.args
        assert api_key == "test-key"
        assert payload["model"] == "think/model"
        assert payload["messages"] == [
            {"role": "system", "content": "You are a designer."},
            {"role": "user", "content": "Make a page."},
        ]
        assert "tools" not in payload
        assert "tool_choice" not in payload

    @pytest.mark.asyncio
    async def test_rendering_kind_falls_back_to_default_model(self, client, transport, messages):
        transport.post_chat_completion.return_value = _text_response("ok")

        await client.get_completion(messages, ModelKind.RENDERING)

        assert _payload(transport, 0)["model"] == "deepseek/deepseek-chat-v3-0324:free"

    @pytest.mark.asyncio
    async def test_tool_definitions_sent_when_requested(self, client, transport, messages):
        transport.post_chat_completion.return_value = _text_response("ok")

        await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        payload = _payload(transport, 0)
        assert payload["tool_choice"] == "auto"
        assert payload["tools"][0]["type"] == "function"
        assert payload["tools"][0]["function"]["name"] == "echo"

    @pytest.mark.asyncio
    async def test_unknown_tool_identifiers_are_skipped(self, client, transport, messages):
        transport.post_chat_completion.return_value = _text_response("ok")

        await client.get_completion(messages, ModelKind.THINKING, ["missing"])

        assert "tools" not in _payload(transport, 0)

    @pytest.mark.asyncio
    async def test_input_messages_not_mutated(self, client, transport, messages):
        transport.post_chat_completion.side_effect = [
            _tool_call_response(_tool_call("echo", {"text": "a"})),
            _text_response("done"),
        ]

        await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        assert len(messages) == 2


class TestToolLoop:

    @pytest.mark.asyncio
    async def test_executes_tool_and_sends_result(self, client, transport, echo_tool, messages):
        transport.post_chat_completion.side_effect = [
            _tool_call_response(_tool_call("echo", {"text": "hello"}, "call_42")),
            _text_response("final answer"),
        ]

        result = await client.get_completion(messages, ModelKind.THINKING, ["echo"], scope=3)

        assert result == "final answer"
        assert echo_tool.calls == [({"text": "hello"}, 3)]

        second = _payload(transport, 1)["messages"]
        assert second[2]["role"] == "assistant"
        assert second[2]["content"] is None
        assert second[2]["tool_calls"][0]["id"] == "call_42"
        assert second[3] == {
            "role": "tool",
            "tool_call_id": "call_42",
            "name": "echo",
            "content": "echo: hello",
        }

    @pytest.mark.asyncio
    async def test_tool_calls_processed_in_order(self, client, transport, messages):
        transport.post_chat_completion.side_effect = [
            _tool_call_response(
                _tool_call("echo", {"text": "first"}, "c1"),
                _tool_call("echo", {"text": "second"}, "c2"),
            ),
            _text_response("done"),
        ]

        await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        tool_messages = [m for m in _payload(transport, 1)["messages"] if m["role"] == "tool"]
        assert [m["tool_call_id"] for m in tool_messages] == ["c1", "c2"]
        assert [m["content"] for m in tool_messages] == ["echo: first", "echo: second"]

    @pytest.mark.asyncio
    async def test_malformed_tool_call_reported(self, client, transport, messages):
        bad_call = {"id": "call_bad", "type": "function", "function": {"arguments": "{}"}}
        transport.post_chat_completion.side_effect = [
            _tool_call_response(bad_call),
            _text_response("recovered"),
        ]

        result = await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        assert result == "recovered"
        tool_message = _payload(transport, 1)["messages"][-1]
        assert tool_message["role"] == "tool"
        assert tool_message["tool_call_id"] == "call_bad"
        assert tool_message["name"] == "unknown"
        assert tool_message["content"] == INVALID_TOOL_CALL_MESSAGE

    @pytest.mark.asyncio
    async def test_malformed_call_without_id_uses_unknown(self, client, transport, messages):
        transport.post_chat_completion.side_effect = [
            _tool_call_response({"function": {"name": "echo"}}),
            _text_response("ok"),
        ]

        await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        tool_message = _payload(transport, 1)["messages"][-1]
        assert tool_message["tool_call_id"] == "unknown"
        assert tool_message["name"] == "echo"

    @pytest.mark.asyncio
    async def test_unknown_tool_reported(self, client, transport, messages):
        transport.post_chat_completion.side_effect = [
            _tool_call_response(_tool_call("nope", {})),
            _text_response("ok"),
        ]

        await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        content = _payload(transport, 1)["messages"][-1]["content"]
        assert content == 'Error executing tool: AI Tool with identifier "nope" not found.'

    @pytest.mark.asyncio
    async def test_invalid_json_arguments_reported(self, client, transport, echo_tool, messages):
        transport.post_chat_completion.side_effect = [
            _tool_call_response(_tool_call("echo", "{not json")),
            _text_response("ok"),
        ]

        await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        content = _payload(transport, 1)["messages"][-1]["content"]
        assert content.startswith("Error executing tool: Invalid JSON arguments")
        assert echo_tool.calls == []

    @pytest.mark.asyncio
    async def test_tool_exception_does_not_abort_batch(self, client, transport, echo_tool, messages):
        transport.post_chat_completion.side_effect = [
            _tool_call_response(
                _tool_call("broken", {"text": "x"}, "c1"),
                _tool_call("echo", {"text": "y"}, "c2"),
            ),
            _text_response("ok"),
        ]

        await client.get_completion(messages, ModelKind.THINKING, ["echo", "broken"])

        tool_messages = [m for m in _payload(transport, 1)["messages"] if m["role"] == "tool"]
        assert tool_messages[0]["content"] == "Error executing tool: tool exploded"
        assert tool_messages[1]["content"] == "echo: y"
        assert echo_tool.calls == [({"text": "y"}, 0)]


class TestIterationLimit:

    @pytest.mark.asyncio
    async def test_raises_after_budget_spent(self, client, transport, echo_tool, messages):
        transport.post_chat_completion.return_value = _tool_call_response(
            _tool_call("echo", {"text": "again"})
        )

        with pytest.raises(MaxIterationsExceeded) as exc_info:
            await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        assert exc_info.value.iterations == 5
        assert transport.post_chat_completion.await_count == 5
        # Tool calls on the final round are never executed
        assert len(echo_tool.calls) == 4

    @pytest.mark.asyncio
    async def test_custom_budget(self, transport, resolver, echo_tool, messages):
        client = CompletionClient(transport, resolver, ToolRegistry({"echo": echo_tool}), max_iterations=2)
        transport.post_chat_completion.return_value = _tool_call_response(
            _tool_call("echo", {"text": "again"})
        )

        with pytest.raises(MaxIterationsExceeded):
            await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        assert transport.post_chat_completion.await_count == 2

    @pytest.mark.asyncio
    async def test_answer_on_last_round_is_accepted(self, client, transport, messages):
        transport.post_chat_completion.side_effect = [
            _tool_call_response(_tool_call("echo", {"text": str(i)}, f"c{i}")) for i in range(4)
        ] + [_text_response("made it")]

        assert await client.get_completion(messages, ModelKind.THINKING, ["echo"]) == "made it"


class TestToolUnsupportedFallback:

    def test_marker_match_is_case_insensitive(self):
        assert is_tool_unsupported_error("No endpoints found that support tool use. Try again")
        assert is_tool_unsupported_error("NO ENDPOINTS FOUND THAT SUPPORT TOOL USE")
        assert not is_tool_unsupported_error("Rate limit exceeded")
        assert not is_tool_unsupported_error(None)
        assert not is_tool_unsupported_error({"detail": "no endpoints found that support tool use"})

    @pytest.mark.asyncio
    async def test_retries_without_tools_on_http_error(self, client, transport, messages):
        transport.post_chat_completion.side_effect = [
            TransportError(
                "Error communicating with API [x]: HTTP Status 404. "
                "Details: No endpoints found that support tool use.",
                status_code=404,
            ),
            _text_response("no tools needed"),
        ]

        result = await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        assert result == "no tools needed"
        assert "tools" in _payload(transport, 0)
        assert "tools" not in _payload(transport, 1)
        assert "tool_choice" not in _payload(transport, 1)

    @pytest.mark.asyncio
    async def test_retries_without_tools_on_error_body(self, client, transport, messages):
        transport.post_chat_completion.side_effect = [
            {"error": {"message": "No endpoints found that support tool use"}},
            _text_response("ok"),
        ]

        assert await client.get_completion(messages, ModelKind.THINKING, ["echo"]) == "ok"
        assert "tools" not in _payload(transport, 1)

    @pytest.mark.asyncio
    async def test_marker_without_tools_is_an_error(self, client, transport, messages):
        transport.post_chat_completion.return_value = {
            "error": {"message": "No endpoints found that support tool use"}
        }

        with pytest.raises(ProviderError):
            await client.get_completion(messages, ModelKind.THINKING)

        assert transport.post_chat_completion.await_count == 1


class TestErrors:

    @pytest.mark.asyncio
    async def test_missing_api_key(self, transport, messages):
        client = CompletionClient(transport, ConfigResolver(Settings(openrouter=OpenRouterSettings(api_key=""))))

        with pytest.raises(ConfigurationError):
            await client.get_completion(messages, ModelKind.THINKING)

        transport.post_chat_completion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_body_raises_provider_error(self, client, transport, messages):
        transport.post_chat_completion.return_value = {"error": {"message": "Model overloaded"}}

        with pytest.raises(ProviderError) as exc_info:
            await client.get_completion(messages, ModelKind.RENDERING)

        assert exc_info.value.message == "AI Service Error [rendering_call1]: Model overloaded"

    @pytest.mark.asyncio
    async def test_structured_error_message_with_tools_raises_provider_error(self, client, transport, messages):
        transport.post_chat_completion.return_value = {"error": {"message": {"detail": "boom"}, "code": 400}}

        with pytest.raises(ProviderError) as exc_info:
            await client.get_completion(messages, ModelKind.THINKING, ["echo"])

        assert "boom" in exc_info.value.message
        assert transport.post_chat_completion.await_count == 1

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, client, transport, messages):
        transport.post_chat_completion.side_effect = TransportError("Timed out")

        with pytest.raises(TransportError):
            await client.get_completion(messages, ModelKind.THINKING, ["echo"])

    @pytest.mark.asyncio
    async def test_null_content_raises_empty_response(self, client, transport, messages):
        transport.post_chat_completion.return_value = _text_response(None)

        with pytest.raises(EmptyResponse):
            await client.get_completion(messages, ModelKind.THINKING)

    @pytest.mark.asyncio
    async def test_missing_choices_raises_provider_error(self, client, transport, messages):
        transport.post_chat_completion.return_value = {"id": "gen-1", "choices": []}

        with pytest.raises(ProviderError):
            await client.get_completion(messages, ModelKind.THINKING)


class TestMetadata:

    @pytest.mark.asyncio
    async def test_account_status(self, client, transport):
        transport.get_key_info.return_value = {
            "data": {
                "limit": 10,
                "limit_remaining": 7.5,
                "usage": 2.5,
                "is_free_tier": False,
                "rate_limit": {"requests": 20, "interval": "10s"},
            }
        }

        status = await client.get_account_status()

        assert status.limit_remaining == 7.5
        assert status.rate_limit.interval == "10s"
        transport.get_key_info.assert_awaited_once_with("test-key")

    @pytest.mark.asyncio
    async def test_account_status_on_transport_error(self, client, transport):
        transport.get_key_info.side_effect = TransportError("HTTP Status 401")

        assert await client.get_account_status() is None

    @pytest.mark.asyncio
    async def test_account_status_without_key(self, transport):
        client = CompletionClient(transport, ConfigResolver(Settings(openrouter=OpenRouterSettings(api_key=""))))

        assert await client.get_account_status() is None
        transport.get_key_info.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_model_details_found(self, client, transport):
        transport.get_models.return_value = {
            "data": [
                {"id": "other/model", "name": "Other"},
                {
                    "id": "think/model",
                    "name": "Thinker",
                    "pricing": {"prompt": "0.000001", "completion": "0.000002"},
                },
            ]
        }

        details = await client.get_model_details("think/model")

        assert details.name == "Thinker"
        assert details.pricing.completion == "0.000002"

    @pytest.mark.asyncio
    async def test_model_details_not_found(self, client, transport):
        transport.get_models.return_value = {"data": [{"id": "other/model", "name": "Other"}]}

        assert await client.get_model_details("think/model") is None

    @pytest.mark.asyncio
    async def test_model_details_on_transport_error(self, client, transport):
        transport.get_models.side_effect = TransportError("Timed out")

        assert await client.get_model_details("think/model") is None
