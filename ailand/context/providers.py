"""
Context and style providers.

The generator only needs strings: store facts, data-source facts and an
optional design-system config. Where they come from (a catalog database, a
theme directory, a CLI flag) is the provider's business. Providers never
raise for missing data; they embed a note the model can read instead.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping

from ailand.config.resolver import ConfigResolver
from ailand.context.models import GenerationContext

logger = logging.getLogger(__name__)


def missing_source_note(source_type: str, source_id: str, scope: int) -> str:
    return (
        f"(Note: Could not retrieve context data for {source_type} ID {source_id} "
        f"in Store ID {scope})"
    )


def missing_store_note(scope: int) -> str:
    return f"(Note: Could not retrieve context data for Store ID {scope})"


class ContextProvider(ABC):
    """Builds the GenerationContext for a request."""

    @abstractmethod
    async def build_context(
        self,
        source_type: str | None,
        source_id: str | int | None,
        scope: int = 0,
    ) -> GenerationContext:
        """
        Collect store and data-source facts.

        Must not raise for unknown sources: failures are reported as
        "(Note: ...)" placeholder text inside the returned context.
        """


class StaticContextProvider(ContextProvider):
    """
    Serves context from in-memory text.

    Args:
        store_contexts: Store facts keyed by scope
        data_sources: Data-source facts keyed by ``(source_type, source_id)``
    """

    def __init__(
        self,
        store_contexts: Mapping[int, str] | None = None,
        data_sources: Mapping[tuple[str, str], str] | None = None,
    ):
        self._store_contexts = dict(store_contexts or {})
        self._data_sources = {
            (source_type, str(source_id)): text
            for (source_type, source_id), text in (data_sources or {}).items()
        }

    async def build_context(
        self,
        source_type: str | None,
        source_id: str | int | None,
        scope: int = 0,
    ) -> GenerationContext:
        store_context = self._store_contexts.get(scope)
        if store_context is None:
            logger.warning("Could not load store context for scope %s", scope)
            store_context = missing_store_note(scope)

        data_source_context = ""
        if source_type and source_id not in (None, ""):
            key = (source_type, str(source_id))
            if key in self._data_sources:
                data_source_context = self._data_sources[key]
            else:
                logger.warning(
                    "Could not load data source context: type=%s id=%s scope=%s",
                    source_type, source_id, scope,
                )
                data_source_context = missing_source_note(source_type, str(source_id), scope)

        return GenerationContext(
            store_context=store_context.strip(),
            data_source_context=data_source_context.strip(),
            data_source_type=source_type or None,
        )


class StyleProvider(ABC):
    """Supplies an optional design-system config (e.g. a Tailwind config)."""

    @abstractmethod
    def get_auxiliary_style_config(self, scope: int = 0) -> str | None:
        """Return the config text, or None when there is none."""


class FileStyleProvider(StyleProvider):
    """
    Reads the style config file configured for the scope.

    A successfully read file is kept in memory per path; failed reads are
    retried on the next call.
    """

    def __init__(self, resolver: ConfigResolver):
        self._resolver = resolver
        self._cache: dict[Path, str] = {}

    def get_auxiliary_style_config(self, scope: int = 0) -> str | None:
        path = self._resolver.resolve_style_config_path(scope)
        if path is None:
            logger.info("No style config configured for store %s", scope)
            return None

        path = Path(path)
        if path in self._cache:
            return self._cache[path] or None

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.info("Style config not readable for store %s at %s: %s", scope, path, e)
            return None

        self._cache[path] = content
        logger.info("Found style config for store %s: %s", scope, path)
        return content or None
