"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
Per-store overrides live under ``scopes`` and are consulted first by
``ailand.config.resolver.ConfigResolver``.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_THINKING_MODEL = "deepseek/deepseek-r1:free"
DEFAULT_RENDERING_MODEL = "deepseek/deepseek-chat-v3-0324:free"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterSettings(BaseSettings):
    """Remote completion API configuration."""

    api_key: str = Field(default="", description="OpenRouter API key")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    thinking_model: str = Field(
        default="",
        description="Model used for the design stage. Empty means the built-in default "
                    f"({DEFAULT_THINKING_MODEL}).",
    )
    rendering_model: str = Field(
        default="",
        description="Model used for HTML rendering and improvement. Empty means the "
                    f"built-in default ({DEFAULT_RENDERING_MODEL}).",
    )
    completion_timeout: float = Field(
        default=300.0, gt=0, description="Timeout in seconds for chat completion calls"
    )
    metadata_timeout: float = Field(
        default=60.0, gt=0, description="Timeout in seconds for /key and /models calls"
    )
    max_tool_iterations: int = Field(
        default=5, ge=1, description="Maximum request round-trips in the tool-calling loop"
    )
    design_tools: list[str] = Field(
        default_factory=list,
        description="Tool identifiers offered to the model during the design stage. "
                    "Set via OPENROUTER_DESIGN_TOOLS='[\"research\"]'",
    )

    model_config = SettingsConfigDict(env_prefix="OPENROUTER_")


class PromptSettings(BaseSettings):
    """Prompt templates and content-goal configuration."""

    templates_dir: Path | None = Field(
        default=None,
        description="Directory holding <name>.txt system prompts. "
                    "None uses the templates shipped with the package.",
    )
    product_base_prompt: str = Field(
        default="Create a compelling landing section that presents the product, "
                "its key benefits and a clear call to action.",
        description="Content goal when the data source is a product",
    )
    category_base_prompt: str = Field(
        default="Create an engaging landing section that introduces the category "
                "and highlights the products it contains.",
        description="Content goal when the data source is a category",
    )
    generic_base_prompt: str = Field(
        default="Create a polished landing section that fulfils the user's instructions "
                "and matches the store's tone.",
        description="Content goal when no data source is selected",
    )
    product_interactive_prompt: str = Field(
        default="Create an interactive product landing section that loads product "
                "data and handles add-to-cart through the storefront GraphQL API.",
        description="Content goal for interactive product pages",
    )
    category_interactive_prompt: str = Field(
        default="Create an interactive category landing section that lists the "
                "category's products through the storefront GraphQL API.",
        description="Content goal for interactive category pages",
    )
    generic_interactive_prompt: str = Field(
        default="Create an interactive landing section that fetches live store data "
                "through the storefront GraphQL API.",
        description="Content goal for interactive pages without a data source",
    )

    model_config = SettingsConfigDict(env_prefix="PROMPT_")


class ScopeOverrides(BaseModel):
    """Values configured for a single store scope. Empty values fall through."""

    api_key: str | None = None
    thinking_model: str | None = None
    rendering_model: str | None = None
    style_config_path: Path | None = Field(
        default=None,
        description="Design-system config (e.g. tailwind.config.js) sent as styling reference",
    )
    base_prompts: dict[str, str] = Field(
        default_factory=dict,
        description="Overrides keyed like PromptSettings fields, e.g. 'product_base_prompt'",
    )


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    openrouter: OpenRouterSettings = Field(default_factory=OpenRouterSettings)
    prompts: PromptSettings = Field(default_factory=PromptSettings)
    scopes: dict[int, ScopeOverrides] = Field(
        default_factory=dict,
        description="Per-store overrides. Set via SCOPES='{\"1\": {\"api_key\": \"...\"}}'",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()
