"""
Base class for tools the model may call mid-conversation.

A tool advertises a ToolDefinition (name, description, JSON-schema-like
parameters) and executes with the decoded arguments of a tool call plus the
store scope of the current request.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping

from ailand.llm.models import ToolDefinition


class Tool(ABC):
    """
    Abstract base class for model-callable tools.

    Implementations return a plain string that is sent back to the model as
    the content of a ``tool`` message. They may raise any exception; the
    completion loop reports it to the model instead of propagating it.
    """

    @abstractmethod
    def definition(self) -> ToolDefinition:
        """
        Describe this tool to the model.

        Example:
            ToolDefinition(
                name="research",
                description="Research and respond to the prompt.",
                parameters={
                    "type": "object",
                    "properties": {
                        "prompt": {"type": "string", "description": "Prompt to research"}
                    },
                    "required": ["prompt"],
                },
            )
        """

    @abstractmethod
    async def execute(self, arguments: Mapping[str, Any], scope: int = 0) -> str:
        """
        Run the tool.

        Args:
            arguments: Decoded JSON arguments from the model's tool call
            scope: Store scope of the request

        Returns:
            Result text for the model
        """

    @property
    def name(self) -> str:
        return self.definition().name
