"""
AiLand CLI entry point.

Provides command-line access to landing-page generation and utility commands.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from ailand import __version__
from ailand.components import AiLandComponents
from ailand.config.logging import get_logger, setup_logging
from ailand.config.settings import Settings, load_settings
from ailand.context.providers import StaticContextProvider
from ailand.generation.models import ActionType, GenerationRequest, GenerationResult
from ailand.llm.errors import LLMError
from ailand.llm.models import ModelKind


def _add_request_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by generate and improve."""
    parser.add_argument(
        "--prompt",
        default="",
        help="Custom instructions for the model",
    )
    parser.add_argument(
        "--scope",
        type=int,
        default=0,
        help="Store scope used for configuration lookups (default: 0)",
    )
    parser.add_argument(
        "--store-context",
        default=None,
        help="Store facts (name, tone, audience) given to the model",
    )
    parser.add_argument(
        "--data-source-type",
        choices=["product", "category"],
        default=None,
        help="Kind of catalog entity the page is about",
    )
    parser.add_argument(
        "--source-id",
        default=None,
        help="Identifier of the product or category",
    )
    parser.add_argument(
        "--data-file",
        type=Path,
        default=None,
        help="Text file with the product/category facts for --source-id",
    )
    parser.add_argument(
        "--image-url",
        default=None,
        help="Reference image URL attached to the final instruction",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Ask for live data and actions through the storefront GraphQL API",
    )
    parser.add_argument(
        "--styling-reference-file",
        type=Path,
        default=None,
        help="HTML file whose styling the result should follow",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the generated HTML to this file instead of stdout",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="ailand",
        description="Generate landing-page HTML with a two-stage LLM pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"AiLand {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config command
    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    # Tools command
    subparsers.add_parser(
        "tools",
        help="List tools the model may call",
    )

    # Status command
    status_parser = subparsers.add_parser(
        "status",
        help="Show API key status and pricing of the configured models",
    )
    status_parser.add_argument(
        "--scope",
        type=int,
        default=0,
        help="Store scope whose key and models are checked (default: 0)",
    )

    # Generate command
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a design plan and render it to HTML",
    )
    _add_request_arguments(generate_parser)

    # Improve command
    improve_parser = subparsers.add_parser(
        "improve",
        help="Improve existing HTML, or re-render a design plan whose HTML is missing",
    )
    _add_request_arguments(improve_parser)
    improve_parser.add_argument(
        "--design-plan-file",
        type=Path,
        default=None,
        help="Technical design plan from an earlier generate run",
    )
    improve_parser.add_argument(
        "--current-content-file",
        type=Path,
        default=None,
        help="Current HTML to improve",
    )

    return parser


def _read_optional(path: Path | None) -> str | None:
    if path is None:
        return None
    return path.read_text(encoding="utf-8")


def build_request(args, action: ActionType) -> GenerationRequest:
    """Translate parsed CLI arguments into a GenerationRequest."""
    return GenerationRequest(
        custom_prompt=args.prompt,
        action=action,
        scope=args.scope,
        data_source_type=args.data_source_type,
        source_id=args.source_id,
        design_plan=_read_optional(getattr(args, "design_plan_file", None)),
        current_content=_read_optional(getattr(args, "current_content_file", None)),
        reference_image_url=args.image_url,
        generate_interactive=args.interactive,
        styling_reference_html=_read_optional(args.styling_reference_file),
    )


def build_context_provider(args) -> StaticContextProvider:
    """Serve the store and data-source facts given on the command line."""
    data_sources = {}
    if args.data_source_type and args.source_id and args.data_file:
        data_sources[(args.data_source_type, args.source_id)] = args.data_file.read_text(encoding="utf-8")
    return StaticContextProvider(
        store_contexts={args.scope: args.store_context or ""},
        data_sources=data_sources,
    )


def print_result(result: GenerationResult, output: Path | None) -> None:
    if result.design:
        print("\n=== Technical Design ===")
        print(result.design)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.html, encoding="utf-8")
        print(f"\nHTML written to {output}")
    else:
        print("\n=== HTML ===")
        print(result.html)


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)
    components = AiLandComponents(settings)
    resolver = components.resolver

    logger.info("Current Configuration:")
    logger.info("\n=== AiLand Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nAPI Base URL: {settings.openrouter.base_url}")
    logger.info(f"API Key: {'Set' if settings.openrouter.api_key else 'Not set'}")
    logger.info(f"Thinking Model: {resolver.resolve_model(ModelKind.THINKING)}")
    logger.info(f"Rendering Model: {resolver.resolve_model(ModelKind.RENDERING)}")
    logger.info(f"Completion Timeout: {settings.openrouter.completion_timeout}s")
    logger.info(f"Metadata Timeout: {settings.openrouter.metadata_timeout}s")
    logger.info(f"Max Tool Iterations: {settings.openrouter.max_tool_iterations}")
    logger.info(f"Design Tools: {', '.join(settings.openrouter.design_tools) or 'None'}")
    logger.info(f"\nTemplates Dir: {settings.prompts.templates_dir or 'packaged templates'}")
    logger.info(f"Store Overrides: {sorted(settings.scopes) or 'None'}")

    return 0


def cmd_tools(settings: Settings) -> int:
    """List the registered tools."""
    components = AiLandComponents(settings)
    registry = components.create_registry(components.create_transport())

    print("\n=== Available Tools ===")
    for identifier in registry.list_identifiers():
        definition = registry.get(identifier).definition()
        enabled = " (design stage)" if identifier in settings.openrouter.design_tools else ""
        print(f"  {identifier}{enabled}: {definition.description}")
    return 0


async def cmd_status(args, settings: Settings) -> int:
    """
    Show account status for the scope's API key and pricing for its models.

    Both lookups are best-effort: failures are logged and reported as
    unavailable rather than failing the command.
    """
    logger = get_logger(__name__)
    components = AiLandComponents(settings)
    client = components.create_client()

    status = await client.get_account_status(args.scope)
    print(f"\n=== Account Status (store {args.scope}) ===")
    if status is None:
        print("  Unavailable (check the API key and the logs)")
    else:
        print(f"  Usage: {status.usage}")
        print(f"  Limit: {status.limit if status.limit is not None else 'unlimited'}")
        print(f"  Remaining: {status.limit_remaining if status.limit_remaining is not None else 'n/a'}")
        print(f"  Free tier: {status.is_free_tier}")
        if status.rate_limit:
            print(f"  Rate limit: {status.rate_limit.requests} requests / {status.rate_limit.interval}")

    print("\n=== Models ===")
    for kind in ModelKind:
        model_id = components.resolver.resolve_model(kind, args.scope)
        details = await client.get_model_details(model_id, args.scope)
        if details is None:
            logger.warning(f"No details for model {model_id}")
            print(f"  {kind.value}: {model_id} (details unavailable)")
            continue
        print(
            f"  {kind.value}: {details.name} [{details.id}] "
            f"prompt={details.pricing.prompt} completion={details.pricing.completion}"
        )

    return 0


async def cmd_generate(args, settings: Settings, action: ActionType) -> int:
    """
    Run a generate or improve request.

    Stage failures come back inside the result and are printed like any
    other output; only configuration and input errors fail the command.
    """
    logger = get_logger(__name__)

    try:
        request = build_request(args, action)
        context_provider = build_context_provider(args)
    except OSError as e:
        logger.error(f"Could not read input file: {e}")
        return 1

    generator = AiLandComponents(settings).create_generator(context_provider)

    try:
        result = await generator.generate(request)
    except LLMError as e:
        print(f"\nError: {e.message}", file=sys.stderr)
        return 1

    print_result(result, args.output)
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    # Setup logging
    setup_logging(settings)

    # Execute command
    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "tools":
        return cmd_tools(settings)
    elif args.command == "status":
        return asyncio.run(cmd_status(args, settings))
    elif args.command == "generate":
        return asyncio.run(cmd_generate(args, settings, ActionType.GENERATE))
    elif args.command == "improve":
        return asyncio.run(cmd_generate(args, settings, ActionType.IMPROVE))
    else:
        # Default: show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
