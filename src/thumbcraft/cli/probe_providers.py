"""CLI command for checking the provider chain end to end.

Runs the configured chain once (in priority order, with fallback) and writes
the winning image to a file. Nothing is persisted to the database.

Usage:
    python -m thumbcraft.cli.probe_providers [OPTIONS]

Examples:
    # Probe with a default request
    python -m thumbcraft.cli.probe_providers

    # Probe only pollinations with a custom title
    python -m thumbcraft.cli.probe_providers --only pollinations --title "Rust in 100 seconds"

    # Square output to a chosen path
    python -m thumbcraft.cli.probe_providers --aspect-ratio 1:1 -o /tmp/probe.png
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path

import httpx
import structlog

from thumbcraft.core import timezone  # noqa: F401
from thumbcraft.core.config import Settings, configure_logging
from thumbcraft.models.generation_job import AspectRatio, ThumbnailStyle
from thumbcraft.services.exceptions import AllProvidersFailed, ValidationError
from thumbcraft.services.image_generation.base import CONTENT_TYPE_EXTENSIONS
from thumbcraft.services.image_generation.orchestrator import GenerationOrchestrator
from thumbcraft.services.image_generation.prompt_builder import compose_prompt, validate_request
from thumbcraft.services.image_generation.provider_table import build_adapter_chain

logger = structlog.get_logger()


def parse_args() -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(description="Generate one thumbnail through the provider chain")

    parser.add_argument("--title", default="How I built a startup in 30 days")
    parser.add_argument(
        "--style",
        default=ThumbnailStyle.BOLD_GRAPHIC.value,
        choices=[s.value for s in ThumbnailStyle],
    )
    parser.add_argument(
        "--aspect-ratio",
        default=AspectRatio.WIDESCREEN.value,
        choices=[a.value for a in AspectRatio],
    )
    parser.add_argument(
        "--only",
        help="Comma-separated provider ids to try instead of PROVIDER_PRIORITY",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="probe",
        help="Output path; the extension is added from the image type (default: probe)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args()


async def async_main() -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (image written), 1 (all providers failed or bad input)
    """
    args = parse_args()

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    if args.only:
        settings.provider_priority = args.only
    configure_logging(settings)

    try:
        request = validate_request(
            title=args.title, style=args.style, aspect_ratio=args.aspect_ratio
        )
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async with httpx.AsyncClient(timeout=settings.provider_timeout_seconds) as client:
        adapters = build_adapter_chain(settings, client=client)
        if not adapters:
            print("Error: no usable provider in the chain", file=sys.stderr)
            return 1

        # Publishing is not exercised here, only generation
        orchestrator = GenerationOrchestrator(adapters, publisher=None, uow_factory=None)  # type: ignore[arg-type]
        try:
            image = await orchestrator.generate(compose_prompt(request), request.aspect_ratio)
        except AllProvidersFailed as e:
            print("\nAll providers failed:", file=sys.stderr)
            for failure in e.failures:
                print(f"  - {failure}", file=sys.stderr)
            return 1

    extension = CONTENT_TYPE_EXTENSIONS.get(image.content_type, "png")
    output = Path(args.output)
    if not output.suffix:
        output = output.with_suffix(f".{extension}")
    output.write_bytes(image.data)

    print(f"\nProvider: {image.provider_id}")
    print(f"Image: {output} ({len(image.data)} bytes, {image.content_type})\n")
    return 0


def main() -> int:
    """Synchronous entry point for CLI."""
    return asyncio.run(async_main())


if __name__ == "__main__":
    sys.exit(main())
