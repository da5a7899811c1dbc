"""
Completion client: the tool-calling loop.

Sends a conversation to the chat completions endpoint and, while the model
answers with tool calls, executes them and sends the results back. The loop
ends when the model produces a plain answer (the only success exit), when the
provider reports an error, or when the round-trip budget is spent.

Data flow for one call:

    get_completion(messages, kind, tool_identifiers, scope)
        → resolve API key + model (ConfigResolver)
        → resolve ToolDefinitions (ToolRegistry; unknown ids skipped)
        → POST /chat/completions   ←→   tool execution (sequential, in order)
        → final assistant content, stripped

Design decisions:
- Tool failures of any kind (malformed call, unknown tool, bad JSON, an
  exception inside the tool) become ``tool`` messages describing the error.
  The model can then recover or answer without the tool; the batch is never
  aborted half-way.
- Some providers reject requests carrying tool definitions for models that
  cannot use them. That specific error is matched by message and the request
  is repeated once without tools. This is a compatibility fallback, not a
  retry policy: nothing else is retried.
- The conversation passed in is never mutated; the loop works on its own copy.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from pydantic import ValidationError

from ailand.llm.errors import (
    ConfigurationError,
    EmptyResponse,
    LLMError,
    MaxIterationsExceeded,
    ProviderError,
    ToolError,
)
from ailand.llm.models import (
    AccountStatus,
    Message,
    ModelDetails,
    ModelKind,
    ToolCallRequest,
    ToolDefinition,
)
from ailand.llm.transport import OpenRouterTransport, PREVIEW_LIMIT
from ailand.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from ailand.config.resolver import ConfigResolver
    from ailand.prompts.conversation import Conversation

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5

# Provider wording for "this model cannot take tool definitions". Vendor text,
# not a documented error code, so it is matched case-insensitively.
TOOL_UNSUPPORTED_MARKER = "no endpoints found that support tool use"

INVALID_TOOL_CALL_MESSAGE = "Error: AI returned an invalid tool call structure."


def is_tool_unsupported_error(message: Any) -> bool:
    if not isinstance(message, str):
        return False
    return TOOL_UNSUPPORTED_MARKER in message.lower()


class CompletionClient:
    """
    Runs one conversation against the completion API, executing tool calls.

    Args:
        transport: HTTP transport to the API
        resolver: Resolves the API key and model id per scope
        registry: Tools the model may call (may be empty)
        max_iterations: Maximum number of request round-trips per call
    """

    def __init__(
        self,
        transport: OpenRouterTransport,
        resolver: ConfigResolver,
        registry: ToolRegistry | None = None,
        max_iterations: int = MAX_ITERATIONS,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._transport = transport
        self._resolver = resolver
        self._registry = registry if registry is not None else ToolRegistry()
        self._max_iterations = max_iterations

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def get_completion(
        self,
        messages: Conversation | Sequence[Message],
        kind: ModelKind,
        tool_identifiers: Iterable[str] = (),
        scope: int = 0,
    ) -> str:
        """
        Get the model's final answer for a conversation.

        Args:
            messages: Conversation to send (not modified)
            kind: Which configured model to use
            tool_identifiers: Registry identifiers to offer as tools
            scope: Store scope for configuration lookups and tool execution

        Returns:
            The final assistant content, stripped of surrounding whitespace

        Raises:
            ConfigurationError: API key or model not configured
            ProviderError: The API returned an error payload or malformed body
            TransportError: Network or HTTP failure
            EmptyResponse: The final assistant message had no content
            MaxIterationsExceeded: The model kept calling tools past the budget
        """
        api_key = self._resolver.resolve_api_key(scope)
        if not api_key:
            raise ConfigurationError(f"OpenRouter API Key is not configured for store {scope}.")

        model = self._resolver.select_model(kind, scope).resolved_model_id
        if not model:
            raise ConfigurationError(f'Could not determine AI model for kind "{kind.value}".')

        tool_identifiers = list(tool_identifiers)
        tool_definitions = self._registry.definitions(tool_identifiers) if tool_identifiers else []

        conversation: list[Message] = list(getattr(messages, "messages", messages))

        for iteration in range(self._max_iterations):
            log_id = f"{kind.value}_call{iteration + 1}"

            response = await self._send(api_key, model, conversation, tool_definitions, log_id)
            assistant_message = self._extract_message(response, log_id)

            # Always keep the assistant turn, tool calls included
            conversation.append(assistant_message)

            if not assistant_message.tool_calls:
                if assistant_message.content is None:
                    logger.error("[%s] Final response carried no content", log_id)
                    raise EmptyResponse(f"OpenRouter API returned empty content [{log_id}].")
                return (assistant_message.text or "").strip()

            if iteration == self._max_iterations - 1:
                logger.error(
                    "[%s] Max tool iterations reached, but AI requested further tool calls",
                    log_id,
                )
                raise MaxIterationsExceeded(
                    f"Maximum tool execution iterations ({self._max_iterations}) reached.",
                    iterations=self._max_iterations,
                )

            for raw_call in assistant_message.tool_calls:
                conversation.append(await self._run_tool_call(raw_call, scope, log_id))

        # Only reachable if the loop body stops returning or raising on its last round
        raise MaxIterationsExceeded(
            f"Maximum tool execution iterations ({self._max_iterations}) reached "
            "without a final response.",
            iterations=self._max_iterations,
        )

    async def _send(
        self,
        api_key: str,
        model: str,
        conversation: list[Message],
        tool_definitions: list[ToolDefinition],
        log_id: str,
    ) -> dict[str, Any]:
        """
        POST the conversation, falling back to a tool-less request once when
        the provider has no endpoint that supports tool use.

        Raises:
            ProviderError: If the body carries an error object
            TransportError: On network or HTTP failure
        """
        payload: dict[str, Any] = {
            "model": model,
            "messages": [message.to_wire() for message in conversation],
        }
        if tool_definitions:
            payload["tools"] = [definition.to_wire() for definition in tool_definitions]
            payload["tool_choice"] = "auto"

        logger.debug(
            "[%s] Request: model=%s messages=%d tools=%d",
            log_id, model, len(conversation), len(tool_definitions),
        )

        try:
            response = await self._transport.post_chat_completion(api_key, payload)
        except LLMError as e:
            if tool_definitions and is_tool_unsupported_error(e.message):
                logger.warning("[%s] %s - Retrying without tools.", log_id, e.message)
                return await self._send(api_key, model, conversation, [], log_id)
            logger.error("[%s] OpenRouter API Error: %s", log_id, e.message)
            raise

        error = response.get("error")
        if error:
            error_message = error.get("message") if isinstance(error, dict) else error
            if error_message is not None and not isinstance(error_message, str):
                error_message = str(error_message)
            if tool_definitions and is_tool_unsupported_error(error_message):
                logger.warning("[%s] %s - Retrying without tools.", log_id, error_message)
                return await self._send(api_key, model, conversation, [], log_id)
            logger.error("[%s] OpenRouter API Error: %s", log_id, error_message, extra={"error": error})
            raise ProviderError(f"AI Service Error [{log_id}]: {error_message or 'Unknown error'}")

        return response

    @staticmethod
    def _extract_message(response: dict[str, Any], log_id: str) -> Message:
        try:
            raw_message = response["choices"][0]["message"]
        except (KeyError, IndexError, TypeError):
            raw_message = None
        if not isinstance(raw_message, dict):
            logger.error("[%s] Could not extract AI message: %s", log_id, str(response)[:PREVIEW_LIMIT])
            raise ProviderError(
                f"OpenRouter API returned an unexpected response format [{log_id}]."
            )
        raw_message.setdefault("role", "assistant")
        try:
            return Message.from_wire(raw_message)
        except ValidationError as e:
            raise ProviderError(
                f"OpenRouter API returned an unreadable message [{log_id}]: {e}", cause=e
            )

    async def _run_tool_call(self, raw_call: Any, scope: int, log_id: str) -> Message:
        """Execute one tool call and return the ``tool`` message answering it."""
        try:
            call = ToolCallRequest.from_wire(raw_call)
        except ToolError as e:
            logger.error("[%s] Invalid tool call structure received from AI: %s", log_id, e)
            raw = raw_call if isinstance(raw_call, dict) else {}
            function = raw.get("function") if isinstance(raw.get("function"), dict) else {}
            return Message.tool(
                tool_call_id=str(raw.get("id") or "unknown"),
                name=str(function.get("name") or "unknown"),
                content=INVALID_TOOL_CALL_MESSAGE,
            )

        try:
            tool = self._registry.get(call.function_name)
            arguments = call.parse_arguments()
            logger.info("[%s] Executing tool '%s'", log_id, call.function_name)
            result = await tool.execute(arguments, scope)
        except Exception as e:
            # Reported to the model; the batch continues
            logger.error("[%s] Error executing tool [%s]: %s", log_id, call.function_name, e)
            return Message.tool(call.id, call.function_name, f"Error executing tool: {e}")

        return Message.tool(call.id, call.function_name, str(result))

    # ------------------------------------------------------------------
    # Account and model metadata
    # ------------------------------------------------------------------

    async def get_account_status(self, scope: int = 0) -> AccountStatus | None:
        """
        Fetch balance and rate-limit information for the scope's API key.

        Returns None (and logs) when no key is configured or the call fails.
        """
        api_key = self._resolver.resolve_api_key(scope)
        if not api_key:
            logger.warning("Cannot get account status: API Key not configured for store %s", scope)
            return None

        try:
            response = await self._transport.get_key_info(api_key)
        except LLMError as e:
            logger.error("OpenRouter Account Status API Error: %s", e.message)
            return None

        if response.get("error"):
            error = response["error"]
            message = error.get("message") if isinstance(error, dict) else error
            logger.warning("OpenRouter Account Status API Error: %s", message or "Unknown error")
            return None

        data = response.get("data")
        if not isinstance(data, dict):
            logger.error("Could not extract account status data from OpenRouter response")
            return None
        try:
            return AccountStatus.model_validate(data)
        except ValidationError as e:
            logger.error("Unreadable account status data: %s", e)
            return None

    async def get_model_details(self, model_id: str, scope: int = 0) -> ModelDetails | None:
        """
        Look up name and pricing for one model id.

        Returns None (and logs) when the model is unknown or the call fails.
        """
        api_key = self._resolver.resolve_api_key(scope)

        try:
            response = await self._transport.get_models(api_key)
        except LLMError as e:
            logger.error("OpenRouter Models API Error: %s", e.message)
            return None

        models = response.get("data")
        if not isinstance(models, list):
            logger.error("Could not extract models data from OpenRouter response")
            return None

        for entry in models:
            if isinstance(entry, dict) and entry.get("id") == model_id:
                try:
                    return ModelDetails.model_validate(
                        {
                            "id": entry["id"],
                            "name": entry.get("name") or model_id,
                            "pricing": entry.get("pricing") or {},
                        }
                    )
                except ValidationError as e:
                    logger.error("Unreadable model entry for %s: %s", model_id, e)
                    return None

        logger.warning("Model not found in OpenRouter response: %s", model_id)
        return None
