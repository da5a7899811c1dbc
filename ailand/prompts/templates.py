"""
System prompt templates.

Templates are plain ``<name>.txt`` files. The package ships the three the
generator needs (design, html, improve); a directory configured through
``PromptSettings.templates_dir`` replaces them wholesale.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from ailand.llm.errors import TemplateUnavailable

logger = logging.getLogger(__name__)

PACKAGED_TEMPLATES_DIR = Path(__file__).parent / "templates"

DESIGN_SYSTEM_PROMPT = "design_system_prompt"
HTML_SYSTEM_PROMPT = "html_system_prompt"
IMPROVE_SYSTEM_PROMPT = "improve_system_prompt"


class TemplateStore(ABC):
    """Source of prompt bodies by logical name."""

    @abstractmethod
    def read_template(self, name: str) -> str:
        """
        Return the template body.

        Raises:
            TemplateUnavailable: If the template is missing or unreadable
        """


class FileTemplateStore(TemplateStore):
    """
    Reads ``<directory>/<name>.txt``.

    Each template is read from disk once and then served from memory, so
    assembling prompts inside a running event loop does no further file IO.
    """

    def __init__(self, directory: str | Path | None = None):
        self._directory = Path(directory) if directory else PACKAGED_TEMPLATES_DIR
        self._cache: dict[str, str] = {}

    @property
    def directory(self) -> Path:
        return self._directory

    def read_template(self, name: str) -> str:
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise TemplateUnavailable(f"Invalid prompt template name: {name!r}")

        if name in self._cache:
            return self._cache[name]

        path = self._directory / f"{name}.txt"
        try:
            self._cache[name] = path.read_text(encoding="utf-8")
            return self._cache[name]
        except FileNotFoundError as e:
            logger.warning("Prompt file not found: %s", path)
            raise TemplateUnavailable(f"Prompt template '{name}' not found at {path}", cause=e)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading prompt file %s: %s", path, e)
            raise TemplateUnavailable(f"Could not read prompt template '{name}': {e}", cause=e)


class InMemoryTemplateStore(TemplateStore):
    """Templates held in a dict; used for tests and embedding."""

    def __init__(self, templates: dict[str, str]):
        self._templates = dict(templates)

    def read_template(self, name: str) -> str:
        try:
            return self._templates[name]
        except KeyError:
            raise TemplateUnavailable(f"Prompt template '{name}' not found") from None
