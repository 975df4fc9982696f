"""
DeepSeek AI Code Review
Command-line entry point
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence

from ai_code_review.config.settings import Settings, get_settings
from ai_code_review.exceptions import CodeReviewException
from ai_code_review.formatter import OUTPUT_FORMATS, format_output
from ai_code_review.models.review_models import FocusArea
from ai_code_review.services.deepseek_service import DeepSeekService
from ai_code_review.services.review_service import review_code
from ai_code_review.utils.version import get_version

logger = logging.getLogger(__name__)

VALID_FOCUS_AREAS = [area.value for area in FocusArea]


def configure_logging(level: str) -> None:
    """Configure structured logging for the whole process"""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


def parse_focus_areas(value: str) -> List[FocusArea]:
    """Parse a comma-separated focus list, dropping unknown areas with a warning"""
    requested = [area.strip().lower() for area in value.split(",") if area.strip()]
    invalid = [area for area in requested if area not in VALID_FOCUS_AREAS]

    if invalid:
        logger.warning(
            f"Unknown focus areas: {', '.join(invalid)}. "
            f"Valid focus areas are: {', '.join(VALID_FOCUS_AREAS)}. "
            "Proceeding with valid focus areas only."
        )

    focus_areas = [FocusArea(area) for area in requested if area in VALID_FOCUS_AREAS]
    return focus_areas or [FocusArea.GENERAL]


def positive_float(value: str) -> float:
    """argparse type for a strictly positive number of seconds"""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-code-review",
        description="AI code review tool using the DeepSeek model",
    )
    parser.add_argument("--version", action="version", version=get_version())

    source = parser.add_mutually_exclusive_group()
    source.add_argument("-f", "--file", help="Path to the file to review")
    source.add_argument("-c", "--code", help="Code snippet to review (as a string)")

    parser.add_argument(
        "--focus",
        default="general",
        help="Focus areas for review (comma-separated: "
        "security,performance,readability,maintainability)",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=None,
        help="Timeout for each DeepSeek API request in seconds (default: 40)",
    )
    parser.add_argument(
        "--output",
        choices=OUTPUT_FORMATS,
        default="text",
        help="Output format",
    )
    parser.add_argument(
        "--check-models",
        action="store_true",
        help="List the models available to the configured API key and exit",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    return parser


async def check_models(settings: Settings) -> int:
    async with DeepSeekService(settings.deepseek_api_key or "", settings=settings) as service:
        models = await service.list_models()
    print("Available DeepSeek Models:")
    for model in models:
        print(f"  - {model}")
    return 0


async def run(args: argparse.Namespace, settings: Settings) -> int:
    if args.check_models:
        return await check_models(settings)

    report = await review_code(
        file_path=args.file,
        code_snippet=args.code,
        focus_areas=parse_focus_areas(args.focus),
        timeout=args.timeout,
        settings=settings,
    )
    print(format_output(report, args.output))
    return 0 if report.review_error is None else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.check_models and not args.file and not args.code:
        parser.print_help(sys.stderr)
        print("Error: Either --file or --code must be provided", file=sys.stderr)
        return 1

    try:
        settings = get_settings()
    except ValueError as e:
        # pydantic's ValidationError subclasses ValueError
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging("DEBUG" if args.verbose else settings.log_level)

    try:
        return asyncio.run(run(args, settings))
    except CodeReviewException as e:
        logger.error(f"Error: {e.message}", exc_info=args.verbose)
        return 1


if __name__ == "__main__":
    sys.exit(main())
