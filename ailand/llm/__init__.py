"""
LLM Orchestration Layer.

Talks to an OpenRouter-compatible completion API and runs the tool-calling
loop that feeds the two-stage generator:

    PromptAssembler.build_messages()  →  Conversation
                                              ↓
    CompletionClient.get_completion(conversation, kind, tools, scope)
                                              ↓
    OpenRouterTransport  ←→  ToolRegistry (tool calls, executed in order)
                                              ↓
                                       final assistant text

CompletionClient lives in ``ailand.llm.client`` and is imported from there;
it depends on the tool registry, which in turn depends on the models below.
"""

from ailand.llm.errors import (
    ConfigurationError,
    EmptyResponse,
    InvalidToolRegistration,
    LLMError,
    MalformedToolCall,
    MaxIterationsExceeded,
    MissingInstruction,
    ProviderError,
    StageError,
    TemplateUnavailable,
    ToolError,
    ToolExecutionError,
    ToolNotFound,
    TransportError,
)
from ailand.llm.models import (
    AccountStatus,
    Message,
    ModelDetails,
    ModelKind,
    ModelSelection,
    Role,
    ToolCallRequest,
    ToolDefinition,
)
from ailand.llm.transport import OpenRouterTransport

__all__ = [
    "AccountStatus",
    "ConfigurationError",
    "EmptyResponse",
    "InvalidToolRegistration",
    "LLMError",
    "MalformedToolCall",
    "MaxIterationsExceeded",
    "Message",
    "MissingInstruction",
    "ModelDetails",
    "ModelKind",
    "ModelSelection",
    "OpenRouterTransport",
    "ProviderError",
    "Role",
    "StageError",
    "TemplateUnavailable",
    "ToolCallRequest",
    "ToolDefinition",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFound",
    "TransportError",
]
