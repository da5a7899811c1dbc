"""
Error taxonomy for the orchestration core.

Three families, by how far they travel:

- Caller errors (ConfigurationError, MissingInstruction, InvalidToolRegistration)
  propagate all the way to whoever invoked the generator.
- StageError subclasses end a single generation stage. The tool loop raises
  them; TwoStageGenerator turns them into a soft GenerationResult whose
  ``html`` carries the message.
- ToolError subclasses never leave the tool loop: each is rendered as a
  ``tool`` message and the conversation continues.
"""

from __future__ import annotations


class LLMError(Exception):
    """Base class for all AiLand errors. Keeps the underlying cause if any."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigurationError(LLMError):
    """API key or model could not be resolved for the requested scope."""


class MissingInstruction(LLMError):
    """The caller did not supply an instruction the chosen path requires."""


class InvalidToolRegistration(LLMError, TypeError):
    """A registry entry does not implement the Tool capability."""


class StageError(LLMError):
    """A generation stage failed; reported to the caller as a soft result."""


class TemplateUnavailable(StageError):
    """A system prompt template is missing, unreadable or empty."""


class ProviderError(StageError):
    """The remote API answered with an error payload or an unusable body."""


class TransportError(StageError):
    """Network failure or non-2xx HTTP status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class EmptyResponse(StageError):
    """The final assistant message carried no content."""


class MaxIterationsExceeded(StageError):
    """The tool-calling loop did not converge within its round-trip budget."""

    def __init__(self, message: str, iterations: int):
        super().__init__(message)
        self.iterations = iterations


class ToolError(LLMError):
    """Per-call tool failure; converted into an in-conversation message."""


class ToolNotFound(ToolError):
    """No tool is registered under the requested identifier."""


class MalformedToolCall(ToolError):
    """A tool call lacks an id, a function name, or parseable arguments."""


class ToolExecutionError(ToolError):
    """A tool raised while executing."""
