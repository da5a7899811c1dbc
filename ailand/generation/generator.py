"""
Two-Stage Generator: design plan first, then HTML.

Composes the PromptAssembler and the CompletionClient into the three flows a
caller can ask for:

    generate              design (thinking model) → render (rendering model)
    improve / retry       render again from an existing design plan
    improve / standard    rewrite the current HTML following an instruction

Routing for ``improve``: a non-empty design plan together with current
content shorter than RETRY_CONTENT_THRESHOLD characters means the previous
render failed or came back near-empty, so the plan is rendered again.
Anything else is a standard improvement.

Design decisions:
- Failures that end a single stage (StageError) are returned as a result
  whose ``html`` carries the error text, so the caller can still show a
  design plan that was produced before the failure.
- Caller mistakes (MissingInstruction) and missing configuration
  (ConfigurationError) are raised; no stage could succeed without a fix.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ailand.config.resolver import ConfigResolver
from ailand.context.models import GenerationContext
from ailand.context.providers import ContextProvider, StyleProvider
from ailand.generation.models import ActionType, GenerationRequest, GenerationResult
from ailand.generation.postprocess import strip_code_fences
from ailand.llm.client import CompletionClient
from ailand.llm.errors import ConfigurationError, MissingInstruction, StageError
from ailand.llm.models import ModelKind
from ailand.prompts.assembler import PromptAssembler
from ailand.prompts.templates import (
    DESIGN_SYSTEM_PROMPT,
    HTML_SYSTEM_PROMPT,
    IMPROVE_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)

RETRY_CONTENT_THRESHOLD = 300

DESIGN_PLAN_LABEL = "Technical Design Plan:\n"
CURRENT_HTML_LABEL = "Current HTML Block:\n"
EMPTY_CONTENT_PLACEHOLDER = "(empty)"
STYLE_CONFIG_LABEL = "Style Configuration (reference only, not loaded in preview):\n"
RETRY_INSTRUCTIONS_LABEL = "Additional User Instructions for this attempt:\n"
IMPROVEMENT_REQUEST_LABEL = "User's Improvement Request:\n"


def content_goal_line(goal: str) -> str:
    return f"Content Goal: {goal}"


def style_config_section(config: str | None) -> str | None:
    if not config or not config.strip():
        return None
    return f"{STYLE_CONFIG_LABEL}```javascript\n{config.strip()}\n```"


def should_retry(design_plan: str | None, current_content: str | None) -> bool:
    """True when an improve request should re-render the existing plan."""
    return bool(design_plan and design_plan.strip()) and len(current_content or "") < RETRY_CONTENT_THRESHOLD


class TwoStageGenerator:
    """
    Entry point for landing-page generation.

    Args:
        client: Completion client running the tool loop
        assembler: Builds each stage's conversation
        resolver: Pre-flight checks against per-scope configuration
        context_provider: Supplies store and data-source facts
        style_provider: Optional design-system config source
        design_tools: Tool identifiers offered during the design stage
    """

    def __init__(
        self,
        client: CompletionClient,
        assembler: PromptAssembler,
        resolver: ConfigResolver,
        context_provider: ContextProvider,
        style_provider: StyleProvider | None = None,
        design_tools: Iterable[str] = (),
    ):
        self._client = client
        self._assembler = assembler
        self._resolver = resolver
        self._context_provider = context_provider
        self._style_provider = style_provider
        self._design_tools = tuple(design_tools)

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run the flow selected by ``request.action``.

        Raises:
            ConfigurationError: No API key for the request's scope
            MissingInstruction: The request carries no usable instruction
        """
        scope = request.scope
        if not self._resolver.resolve_api_key(scope):
            raise ConfigurationError(
                f"OpenRouter API Key is not configured for store {scope}. "
                "Set OPENROUTER_API_KEY or a per-store override."
            )

        custom_prompt = (request.custom_prompt or "").strip()
        if request.action is ActionType.GENERATE and not custom_prompt and not request.data_source_type:
            raise MissingInstruction(
                "A custom prompt is required for generation if no product or category is selected."
            )

        context = await self._build_context(request)

        if request.action is ActionType.GENERATE:
            return await self._run_generate(request, context, custom_prompt)

        if should_retry(request.design_plan, request.current_content):
            return await self._run_retry(request, context, custom_prompt)
        return await self._run_improve(request, context, custom_prompt)

    async def _build_context(self, request: GenerationRequest) -> GenerationContext:
        context = await self._context_provider.build_context(
            request.data_source_type, request.source_id, request.scope
        )
        if request.styling_reference_html:
            context = context.model_copy(
                update={"styling_reference_html": request.styling_reference_html}
            )
        return context

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    async def _run_generate(
        self,
        request: GenerationRequest,
        context: GenerationContext,
        custom_prompt: str,
    ) -> GenerationResult:
        try:
            design = await self.design_stage(request, context, custom_prompt)
        except StageError as e:
            logger.error("Error during Stage 1 Design generation: %s", e.message)
            return GenerationResult(design=None, html=f"Error generating design (Stage 1): {e.message}")

        try:
            html = await self.render_stage(request, context, design)
        except StageError as e:
            logger.error("Error during Stage 2 HTML generation: %s", e.message)
            return GenerationResult(design=design, html=f"Error generating HTML (Stage 2): {e.message}")

        return GenerationResult(design=design, html=strip_code_fences(html))

    async def _run_retry(
        self,
        request: GenerationRequest,
        context: GenerationContext,
        custom_prompt: str,
    ) -> GenerationResult:
        design = request.design_plan
        if custom_prompt:
            logger.info("Improvement prompt provided for retry: %s", custom_prompt)
        else:
            logger.info("No improvement prompt provided for retry, generating from the design plan")

        try:
            html = await self.render_stage(request, context, design, extra_instructions=custom_prompt)
        except StageError as e:
            logger.error("Error during Retry Stage 2 HTML generation: %s", e.message)
            return GenerationResult(
                design=design, html=f"Error retrying HTML generation (Stage 2): {e.message}"
            )

        return GenerationResult(design=design, html=strip_code_fences(html))

    async def _run_improve(
        self,
        request: GenerationRequest,
        context: GenerationContext,
        custom_prompt: str,
    ) -> GenerationResult:
        if not custom_prompt:
            raise MissingInstruction(
                "An improvement instruction is required in the prompt field when improving content."
            )

        try:
            html = await self.improve_stage(request, context, custom_prompt)
        except StageError as e:
            logger.error("Error during Improve Stage HTML generation: %s", e.message)
            return GenerationResult(design=None, html=f"Error improving HTML: {e.message}")

        return GenerationResult(design=None, html=strip_code_fences(html))

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _content_goal(self, request: GenerationRequest, context: GenerationContext, interactive: bool) -> str:
        # The source-specific goal only applies when its facts were found
        source_type = context.data_source_type if context.data_source_context else None
        return self._assembler.content_goal(source_type, request.scope, interactive)

    def _style_config(self, scope: int) -> str | None:
        if self._style_provider is None:
            return None
        return style_config_section(self._style_provider.get_auxiliary_style_config(scope))

    async def design_stage(
        self,
        request: GenerationRequest,
        context: GenerationContext,
        custom_prompt: str,
    ) -> str:
        """Stage 1: ask the thinking model for a technical design plan."""
        logger.info("Starting AI Generation Stage 1: Technical Design (store %s)", request.scope)

        instruction = content_goal_line(self._content_goal(request, context, interactive=False))
        if custom_prompt:
            instruction += f"\nUser's Custom Instructions: {custom_prompt}"

        conversation = self._assembler.build_messages(
            DESIGN_SYSTEM_PROMPT,
            context,
            instruction,
            capability_note_enabled=request.generate_interactive,
        )
        self._assembler.attach_reference_image(conversation, request.reference_image_url)

        design = await self._client.get_completion(
            conversation, ModelKind.THINKING, self._design_tools, request.scope
        )
        logger.info("Completed AI Generation Stage 1")
        return design

    async def render_stage(
        self,
        request: GenerationRequest,
        context: GenerationContext,
        design: str,
        extra_instructions: str = "",
    ) -> str:
        """Stage 2: render a design plan to HTML with the rendering model."""
        logger.info("Starting AI Generation Stage 2: HTML Generation (store %s)", request.scope)

        instruction = content_goal_line(
            self._content_goal(request, context, interactive=request.generate_interactive)
        )
        if extra_instructions:
            instruction += f"\n\n{RETRY_INSTRUCTIONS_LABEL}{extra_instructions}"

        conversation = self._assembler.build_messages(
            HTML_SYSTEM_PROMPT,
            context,
            instruction,
            artifacts=[DESIGN_PLAN_LABEL + design, self._style_config(request.scope)],
        )
        self._assembler.attach_reference_image(conversation, request.reference_image_url)

        html = await self._client.get_completion(conversation, ModelKind.RENDERING, (), request.scope)
        logger.info("Completed AI Generation Stage 2")
        return html

    async def improve_stage(
        self,
        request: GenerationRequest,
        context: GenerationContext,
        custom_prompt: str,
    ) -> str:
        """Rewrite the current HTML following the user's instruction."""
        logger.info("Performing standard HTML improvement (store %s)", request.scope)

        instruction = (
            content_goal_line(self._content_goal(request, context, interactive=request.generate_interactive))
            + f"\n\n{IMPROVEMENT_REQUEST_LABEL}{custom_prompt}"
        )

        conversation = self._assembler.build_messages(
            IMPROVE_SYSTEM_PROMPT,
            context,
            instruction,
            artifacts=[
                CURRENT_HTML_LABEL + (request.current_content or EMPTY_CONTENT_PLACEHOLDER),
                self._style_config(request.scope),
            ],
        )
        self._assembler.attach_reference_image(conversation, request.reference_image_url)

        html = await self._client.get_completion(conversation, ModelKind.RENDERING, (), request.scope)
        logger.info("Completed AI Generation: Improve HTML")
        return html
