"""
Research tool.

Lets the design-stage model delegate a focused question (competitor copy,
audience, terminology) to a separate, tool-less completion and read the
answer back as the tool result.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ailand.llm.client import CompletionClient
from ailand.llm.errors import ToolExecutionError
from ailand.llm.models import Message, ModelKind, ToolDefinition
from ailand.tools.base import Tool

logger = logging.getLogger(__name__)

RESEARCH_TOOL_NAME = "research"

RESEARCH_SYSTEM_PROMPT = (
    "You are a research assistant for an e-commerce content team. Answer the "
    "request concisely and factually. If you are not sure, say so."
)


class ResearchTool(Tool):
    """
    Answers a research prompt with the thinking model.

    The client given here must not offer this tool itself, otherwise a
    research call could recurse into another research call.

    Args:
        client: Completion client used for the research call
        kind: Which configured model answers
    """

    def __init__(self, client: CompletionClient, kind: ModelKind = ModelKind.THINKING):
        self._client = client
        self._kind = kind

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=RESEARCH_TOOL_NAME,
            description="Research and respond to the prompt.",
            parameters={
                "type": "object",
                "properties": {
                    "prompt": {
                        "type": "string",
                        "description": "Prompt to research and respond to.",
                    },
                },
                "required": ["prompt"],
            },
        )

    async def execute(self, arguments: Mapping[str, Any], scope: int = 0) -> str:
        prompt = arguments.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise ToolExecutionError("research requires a non-empty 'prompt' argument")

        logger.info("Researching for store %s: %s", scope, prompt[:100])
        messages = [Message.system(RESEARCH_SYSTEM_PROMPT), Message.user(prompt.strip())]
        return await self._client.get_completion(messages, self._kind, (), scope)
