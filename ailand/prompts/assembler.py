"""
Prompt assembly.

Builds the ordered message list for each generation stage. The order is a
contract relied on downstream:

    system prompt
    "Store Context"            (if non-empty)
    "Data Source Context"      (if non-empty)
    "Styling Reference HTML"   (if present)
    prior-stage artifacts      (design plan, current HTML, style config, ...)
    capability note            (if enabled)
    main instruction           (always last)

A reference image is attached afterwards and always targets the final user
message, which is why the main instruction has to come last.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ailand.config.resolver import ConfigResolver
from ailand.context.models import GenerationContext
from ailand.llm.errors import TemplateUnavailable
from ailand.llm.models import ImagePart, Message, Role, TextPart
from ailand.prompts.conversation import Conversation
from ailand.prompts.templates import TemplateStore

logger = logging.getLogger(__name__)

STORE_CONTEXT_LABEL = "Store Context:\n"
DATA_SOURCE_CONTEXT_LABEL = "Data Source Context:\n"
STYLING_REFERENCE_LABEL = "Styling Reference HTML:\n"
REFERENCE_IMAGE_LABEL = "Reference Image:"

GRAPHQL_INSTRUCTION = (
    "IMPORTANT IMPLEMENTATION NOTE: When generating the HTML and JavaScript, DO NOT "
    "hardcode dynamic data (like product names, prices, descriptions, category lists, "
    "etc.) or actions (like add to cart). Instead, implement the necessary logic using "
    "the store's GraphQL API. Assume the GraphQL endpoint is available at '/graphql'. "
    "Use appropriate queries and mutations for data fetching and actions."
)


class PromptAssembler:
    """
    Turns templates, request context and instructions into a Conversation.

    Args:
        templates: Where system prompt bodies are read from
        resolver: Used for per-scope content goals
    """

    def __init__(self, templates: TemplateStore, resolver: ConfigResolver):
        self._templates = templates
        self._resolver = resolver

    def load_template(self, name: str) -> str:
        """
        Read a system prompt body.

        Raises:
            TemplateUnavailable: If the template is missing, unreadable or blank
        """
        body = self._templates.read_template(name).strip()
        if not body:
            raise TemplateUnavailable(f"Prompt template '{name}' is empty")
        return body

    def content_goal(
        self,
        data_source_type: str | None,
        scope: int = 0,
        interactive: bool = False,
    ) -> str:
        return self._resolver.resolve_base_prompt(data_source_type, scope, interactive)

    def build_messages(
        self,
        system_prompt_name: str,
        context: GenerationContext,
        main_instruction: str,
        capability_note_enabled: bool = False,
        artifacts: Sequence[str | None] = (),
    ) -> Conversation:
        """
        Build a stage's conversation in the fixed section order.

        Args:
            system_prompt_name: Template name of the system prompt
            context: Request context; empty sections are skipped
            main_instruction: Final user message
            capability_note_enabled: Append the GraphQL implementation note
            artifacts: Prior-stage material, already labelled, in order. Empty or None entries are skipped

        Raises:
            TemplateUnavailable: If the system prompt cannot be loaded
        """
        conversation = Conversation([Message.system(self.load_template(system_prompt_name))])

        if context.store_context:
            conversation.append(Message.user(STORE_CONTEXT_LABEL + context.store_context))
        if context.data_source_context:
            conversation.append(Message.user(DATA_SOURCE_CONTEXT_LABEL + context.data_source_context))
        if context.styling_reference_html:
            conversation.append(Message.user(STYLING_REFERENCE_LABEL + context.styling_reference_html))

        for artifact in artifacts:
            if artifact:
                conversation.append(Message.user(artifact))

        self.maybe_add_capability_instruction(conversation, capability_note_enabled)
        conversation.append(Message.user(main_instruction))
        return conversation

    @staticmethod
    def maybe_add_capability_instruction(conversation: Conversation, enabled: bool) -> Conversation:
        if enabled:
            conversation.append(Message.user(GRAPHQL_INSTRUCTION))
            logger.info("Adding GraphQL instruction for interactive page generation")
        return conversation

    @staticmethod
    def attach_reference_image(conversation: Conversation, image_url: str | None) -> Conversation:
        """
        Attach an image to the final user message.

        If the last message is a user message its content becomes a parts
        list ending with the image. Otherwise a new user message carrying a
        text label and the image is appended. A blank URL is a no-op.
        """
        url = (image_url or "").strip()
        if not url:
            return conversation

        image = ImagePart.from_url(url)
        last = conversation.last

        if last is not None and last.role is Role.USER:
            if isinstance(last.content, list):
                parts = [*last.content, image]
            elif isinstance(last.content, str):
                parts = [TextPart(text=last.content), image]
            else:
                logger.warning("Last user message has no content; attaching image with a placeholder")
                parts = [TextPart(text="(Previous content)"), image]
            conversation.replace_last(last.model_copy(update={"content": parts}))
            logger.info("Added reference image to last user message: %s", url)
        else:
            conversation.append(Message.user([TextPart(text=REFERENCE_IMAGE_LABEL), image]))
            logger.info("Added reference image as a separate message: %s", url)

        return conversation
