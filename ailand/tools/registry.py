"""Construction-time registry mapping tool identifiers to Tool instances."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from ailand.llm.errors import InvalidToolRegistration, ToolNotFound
from ailand.llm.models import ToolDefinition
from ailand.tools.base import Tool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Immutable lookup from identifier to Tool.

    Every entry is validated when the registry is built: the value must be a
    Tool and its definition name must equal the key, since the model calls
    tools by the name it was shown.

    Raises:
        InvalidToolRegistration: On the first invalid entry
    """

    def __init__(self, tools: Mapping[str, Tool] | None = None):
        validated: dict[str, Tool] = {}
        for identifier, tool in (tools or {}).items():
            if not isinstance(tool, Tool):
                raise InvalidToolRegistration(
                    f"Tool with key '{identifier}' must implement {Tool.__module__}.Tool, "
                    f"got {type(tool).__name__}"
                )
            definition_name = tool.definition().name
            if definition_name != identifier:
                raise InvalidToolRegistration(
                    f"Tool registered as '{identifier}' advertises the name "
                    f"'{definition_name}'"
                )
            validated[identifier] = tool
        self._tools = MappingProxyType(validated)

    def get(self, identifier: str) -> Tool:
        """
        Look up a tool.

        Raises:
            ToolNotFound: If nothing is registered under ``identifier``
        """
        try:
            return self._tools[identifier]
        except KeyError:
            raise ToolNotFound(f'AI Tool with identifier "{identifier}" not found.') from None

    def list_identifiers(self) -> list[str]:
        return list(self._tools)

    def definitions(self, identifiers: Iterable[str]) -> list[ToolDefinition]:
        """
        Resolve definitions for the requested identifiers.

        Unknown identifiers are logged and skipped so one bad entry does not
        take the whole call down.
        """
        definitions: list[ToolDefinition] = []
        for identifier in identifiers:
            try:
                definitions.append(self.get(identifier).definition())
            except ToolNotFound as e:
                logger.warning("Could not get tool definition for '%s': %s", identifier, e)
        return definitions

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._tools

    def __len__(self) -> int:
        return len(self._tools)
