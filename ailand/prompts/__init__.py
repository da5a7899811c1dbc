"""
Prompt layer: templates, the conversation builder and the stage assembler.
"""

from ailand.prompts.assembler import GRAPHQL_INSTRUCTION, PromptAssembler
from ailand.prompts.conversation import Conversation
from ailand.prompts.templates import FileTemplateStore, InMemoryTemplateStore, TemplateStore

__all__ = [
    "Conversation",
    "FileTemplateStore",
    "GRAPHQL_INSTRUCTION",
    "InMemoryTemplateStore",
    "PromptAssembler",
    "TemplateStore",
]
