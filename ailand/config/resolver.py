"""
Per-scope configuration resolution.

Every lookup is an ordered fallback chain: the store scope's override, then
the global setting, then (for models and base prompts) a built-in default.
The resolver never raises for missing values; callers that need a value
decide whether its absence is fatal.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ailand.config.settings import (
    DEFAULT_RENDERING_MODEL,
    DEFAULT_THINKING_MODEL,
    ScopeOverrides,
    Settings,
)
from ailand.llm.models import ModelKind, ModelSelection

logger = logging.getLogger(__name__)

DEFAULT_MODELS: dict[ModelKind, str] = {
    ModelKind.THINKING: DEFAULT_THINKING_MODEL,
    ModelKind.RENDERING: DEFAULT_RENDERING_MODEL,
}

DEFAULT_CONTENT_GOAL = "Generate content based on the provided context."

# Data source types with a dedicated base prompt; anything else is "generic"
BASE_PROMPT_SOURCE_TYPES = ("product", "category")


def resolve_first(*candidates: str | None) -> str | None:
    """Return the first candidate that is a non-blank string, else None."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate
    return None


def base_prompt_key(data_source_type: str | None, interactive: bool) -> str:
    """Name of the PromptSettings field holding the content goal."""
    source = data_source_type if data_source_type in BASE_PROMPT_SOURCE_TYPES else "generic"
    suffix = "interactive_prompt" if interactive else "base_prompt"
    return f"{source}_{suffix}"


class ConfigResolver:
    """
    Read-only view over Settings answering per-scope questions.

    Safe to share between concurrent requests: it never mutates settings.
    """

    def __init__(self, settings: Settings):
        self._settings = settings

    def _scope(self, scope: int) -> ScopeOverrides:
        return self._settings.scopes.get(scope) or ScopeOverrides()

    def resolve_api_key(self, scope: int = 0) -> str | None:
        return resolve_first(self._scope(scope).api_key, self._settings.openrouter.api_key)

    def resolve_model(self, kind: ModelKind, scope: int = 0) -> str:
        overrides = self._scope(scope)
        if kind is ModelKind.THINKING:
            candidates = (overrides.thinking_model, self._settings.openrouter.thinking_model)
        else:
            candidates = (overrides.rendering_model, self._settings.openrouter.rendering_model)
        return resolve_first(*candidates) or DEFAULT_MODELS[kind]

    def select_model(self, kind: ModelKind, scope: int = 0) -> ModelSelection:
        return ModelSelection(kind=kind, resolved_model_id=self.resolve_model(kind, scope))

    def resolve_style_config_path(self, scope: int = 0) -> Path | None:
        return self._scope(scope).style_config_path

    def resolve_base_prompt(
        self,
        data_source_type: str | None,
        scope: int = 0,
        interactive: bool = False,
    ) -> str:
        """
        Content goal for a data source type.

        Falls back to a generic instruction (and logs it) when neither the
        scope nor the global settings define one.
        """
        key = base_prompt_key(data_source_type, interactive)
        prompt = resolve_first(
            self._scope(scope).base_prompts.get(key),
            getattr(self._settings.prompts, key),
        )
        if prompt is None:
            logger.error("Missing required prompt configuration for: %s", key)
            return DEFAULT_CONTENT_GOAL
        return prompt.strip()
