"""
Pydantic models for the LLM subsystem.

These mirror the OpenRouter chat-completions wire format closely: a Message
dumps (``to_wire``) straight into the ``messages`` array of a request, and an
assistant message parsed from a response (``from_wire``) keeps every field the
provider sent so it can be echoed back verbatim on the next round.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

from ailand.llm.errors import MalformedToolCall


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ModelKind(str, Enum):
    """Which configured model a call should use."""

    THINKING = "thinking"
    RENDERING = "rendering"


class ModelSelection(BaseModel):
    """The model resolved for one request."""

    kind: ModelKind
    resolved_model_id: str

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Message content
# ---------------------------------------------------------------------------

class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str

    model_config = ConfigDict(frozen=True)


class ImageURL(BaseModel):
    url: str

    model_config = ConfigDict(frozen=True)


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageURL

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_url(cls, url: str) -> ImagePart:
        return cls(image_url=ImageURL(url=url))


ContentPart = Annotated[TextPart | ImagePart, Field(discriminator="type")]


class Message(BaseModel):
    """
    One entry of a conversation.

    ``content`` is either plain text or an ordered list of multimodal parts.
    Assistant messages may carry ``tool_calls`` (kept as raw provider dicts);
    tool messages carry the ``tool_call_id`` they answer. Unknown provider
    fields are preserved so the assistant turn can be replayed unchanged.
    """

    role: Role
    content: str | list[ContentPart] | None = None
    tool_call_id: str | None = None
    name: str | None = None
    tool_calls: list[Any] | None = None

    model_config = ConfigDict(frozen=True, extra="allow")

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str | list[ContentPart]) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def tool(cls, tool_call_id: str, name: str, content: str) -> Message:
        return cls(role=Role.TOOL, tool_call_id=tool_call_id, name=name, content=content)

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> Message:
        """Build a message from a provider response, keeping extra fields."""
        return cls.model_validate(dict(data))

    def to_wire(self) -> dict[str, Any]:
        """Dump to the request JSON shape, dropping unset optional fields."""
        data = self.model_dump(mode="json", exclude_none=True)
        if self.role is Role.ASSISTANT and "content" not in data:
            # Assistant turns that only call tools are sent back with an explicit null
            data["content"] = None
        return data

    @property
    def text(self) -> str | None:
        """Plain-text view of the content (text parts joined), if any."""
        if self.content is None or isinstance(self.content, str):
            return self.content
        return "\n".join(part.text for part in self.content if isinstance(part, TextPart))


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

class ToolDefinition(BaseModel):
    """Schema a tool advertises to the model."""

    name: str = Field(min_length=1)
    description: str
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []},
        description="JSON-schema-like object: type / properties / required",
    )

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolCallRequest(BaseModel):
    """A single validated tool call taken from an assistant message."""

    id: str
    function_name: str
    arguments_json: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_wire(cls, raw: Any) -> ToolCallRequest:
        """
        Validate a raw ``tool_calls`` entry.

        Raises:
            MalformedToolCall: If the id, function name or arguments are missing
        """
        if not isinstance(raw, Mapping):
            raise MalformedToolCall(f"Tool call is not an object: {raw!r}")
        function = raw.get("function")
        if not isinstance(function, Mapping):
            function = {}
        call_id = raw.get("id")
        name = function.get("name")
        arguments = function.get("arguments")
        if not call_id or not name or arguments is None:
            raise MalformedToolCall(
                f"Tool call is missing id, name or arguments: {dict(raw)!r}"
            )
        if not isinstance(arguments, str):
            # Some providers send already-decoded arguments
            arguments = json.dumps(arguments)
        return cls(id=str(call_id), function_name=str(name), arguments_json=arguments)

    def parse_arguments(self) -> dict[str, Any]:
        """
        Decode ``arguments_json`` into a mapping.

        Raises:
            MalformedToolCall: If the JSON is invalid or not an object
        """
        if not self.arguments_json.strip():
            return {}
        try:
            arguments = json.loads(self.arguments_json)
        except json.JSONDecodeError as e:
            raise MalformedToolCall(
                f"Invalid JSON arguments for tool '{self.function_name}': {e}", cause=e
            )
        if not isinstance(arguments, dict):
            raise MalformedToolCall(
                f"Arguments for tool '{self.function_name}' must be a JSON object"
            )
        return arguments


# ---------------------------------------------------------------------------
# Account / model metadata
# ---------------------------------------------------------------------------

class RateLimit(BaseModel):
    requests: int | None = None
    interval: str | None = None


class AccountStatus(BaseModel):
    """Key information returned by ``GET /key``."""

    limit_remaining: float | None = None
    limit: float | None = None
    usage: float | None = None
    is_free_tier: bool | None = None
    rate_limit: RateLimit | None = None


class ModelPricing(BaseModel):
    # Prices come back as decimal strings, e.g. "0.0000015"
    prompt: str | float | None = None
    completion: str | float | None = None


class ModelDetails(BaseModel):
    """One entry of ``GET /models``, reduced to what the status view shows."""

    id: str
    name: str
    pricing: ModelPricing = Field(default_factory=ModelPricing)
