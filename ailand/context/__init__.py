"""
Request context: store and data-source facts plus optional styling input.
"""

from ailand.context.models import GenerationContext
from ailand.context.providers import (
    ContextProvider,
    FileStyleProvider,
    StaticContextProvider,
    StyleProvider,
)

__all__ = [
    "ContextProvider",
    "FileStyleProvider",
    "GenerationContext",
    "StaticContextProvider",
    "StyleProvider",
]
