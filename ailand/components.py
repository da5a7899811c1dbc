"""
Component factory.

Centralises the construction of the generation stack from settings so the
CLI, tests and any future entry point wire things the same way.
"""

from __future__ import annotations

from ailand.config.resolver import ConfigResolver
from ailand.config.settings import Settings
from ailand.context.providers import ContextProvider, FileStyleProvider, StaticContextProvider
from ailand.generation.generator import TwoStageGenerator
from ailand.llm.client import CompletionClient
from ailand.llm.transport import OpenRouterTransport
from ailand.prompts.assembler import PromptAssembler
from ailand.prompts.templates import FileTemplateStore, TemplateStore
from ailand.tools.registry import ToolRegistry
from ailand.tools.research import RESEARCH_TOOL_NAME, ResearchTool


class AiLandComponents:
    """
    Factory for building generation components from settings.

    Example::

        factory = AiLandComponents(settings)
        generator = factory.create_generator(StaticContextProvider({0: "Shop facts"}))
        result = await generator.generate(GenerationRequest(custom_prompt="Spring sale"))
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.resolver = ConfigResolver(settings)

    def create_transport(self) -> OpenRouterTransport:
        """Create an OpenRouterTransport from settings."""
        openrouter = self.settings.openrouter
        return OpenRouterTransport(
            base_url=openrouter.base_url,
            completion_timeout=openrouter.completion_timeout,
            metadata_timeout=openrouter.metadata_timeout,
        )

    def create_template_store(self) -> TemplateStore:
        """Templates from PROMPT_TEMPLATES_DIR, or the packaged ones."""
        return FileTemplateStore(self.settings.prompts.templates_dir)

    def create_assembler(self, templates: TemplateStore | None = None) -> PromptAssembler:
        return PromptAssembler(templates or self.create_template_store(), self.resolver)

    def create_registry(self, transport: OpenRouterTransport) -> ToolRegistry:
        """
        Build the registry of model-callable tools.

        The research tool answers through its own tool-less client.
        """
        research_client = CompletionClient(
            transport,
            self.resolver,
            max_iterations=self.settings.openrouter.max_tool_iterations,
        )
        return ToolRegistry({RESEARCH_TOOL_NAME: ResearchTool(research_client)})

    def create_client(self, transport: OpenRouterTransport | None = None) -> CompletionClient:
        """Create the main CompletionClient, with every registered tool available."""
        transport = transport or self.create_transport()
        return CompletionClient(
            transport,
            self.resolver,
            registry=self.create_registry(transport),
            max_iterations=self.settings.openrouter.max_tool_iterations,
        )

    def create_generator(
        self,
        context_provider: ContextProvider | None = None,
        client: CompletionClient | None = None,
    ) -> TwoStageGenerator:
        """
        Create a TwoStageGenerator.

        Args:
            context_provider: Store/data-source facts. Defaults to an empty
                StaticContextProvider, which reports every lookup as missing.
            client: Completion client to use instead of a fresh one
        """
        return TwoStageGenerator(
            client=client or self.create_client(),
            assembler=self.create_assembler(),
            resolver=self.resolver,
            context_provider=context_provider or StaticContextProvider(),
            style_provider=FileStyleProvider(self.resolver),
            design_tools=self.settings.openrouter.design_tools,
        )
