"""Command line interface for the wpbabel page translator."""

from __future__ import annotations

import argparse
import json
import pathlib
import sys
from typing import Iterable, Optional

from .configuration import WpBabelConfig, get_settings
from .errors import (
    DestinationAuthenticationError,
    DestinationError,
    TranslationCancelled,
    TranslationProviderConfigurationError,
    TranslationProviderError,
    WpBabelError,
)
from .languages import LANGUAGES, language_name
from .logger import setup_logger
from .providers import build_provider
from .translator import HtmlTranslator, PageTranslationSummary, TranslationResult, translate_page
from .wordpress import WordPressClient, WordPressCredentials


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier (gemini, openai, azure_openai, echo).",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    common.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )

    translate_options = argparse.ArgumentParser(add_help=False)
    translate_options.add_argument(
        "-t",
        "--target-language",
        required=True,
        help="Destination language code (e.g. es, de, ja).",
    )
    translate_options.add_argument(
        "-m",
        "--model",
        help="Provider-specific model identifier.",
    )
    translate_options.add_argument(
        "-b",
        "--batch-budget",
        type=int,
        help="Maximum characters per translation request.",
    )

    parser = argparse.ArgumentParser(
        prog="wpbabel",
        description="Create translated draft copies of WordPress pages.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("pages", parents=[common], help="List the pages of the site.")
    subparsers.add_parser("languages", help="List the offered target languages.")

    page_parser = subparsers.add_parser(
        "translate",
        parents=[common, translate_options],
        help="Translate a page and create the result as a draft.",
    )
    page_parser.add_argument("page_id", type=int, help="Identifier of the page to translate.")
    page_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the new page payload instead of creating it.",
    )

    file_parser = subparsers.add_parser(
        "translate-file",
        parents=[common, translate_options],
        help="Translate a local HTML file.",
    )
    file_parser.add_argument("input_file", help="Path to the HTML file to translate.")
    file_parser.add_argument(
        "-o",
        "--output",
        help="Output file path. Defaults to appending the target language code.",
    )
    file_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting the output file if it already exists.",
    )
    return parser


def derive_output_path(input_path: pathlib.Path, language_code: str) -> pathlib.Path:
    return input_path.with_name(f"{input_path.stem}_{language_code}{input_path.suffix}")


def print_progress(percent: int, message: str) -> None:
    print(f"[{percent:3d}%] {message}")


def build_translator(settings: WpBabelConfig, args: argparse.Namespace) -> HtmlTranslator:
    provider = build_provider(
        args.provider,
        settings,
        debug=bool(args.debug_provider or settings.WPBABEL_PROVIDER_DEBUG),
    )
    return HtmlTranslator(
        provider,
        batch_budget=args.batch_budget or settings.WPBABEL_BATCH_BUDGET,
        max_retries=settings.WPBABEL_MAX_RETRIES,
    )


def build_client(settings: WpBabelConfig) -> WordPressClient:
    if not settings.wordpress_configured():
        raise TranslationProviderConfigurationError(
            "WordPress access requires WP_SITE_URL, WP_USERNAME and WP_APP_PASSWORD."
        )
    credentials = WordPressCredentials(
        site_url=settings.WP_SITE_URL or "",
        username=settings.WP_USERNAME or "",
        app_password=settings.WP_APP_PASSWORD or "",
    )
    return WordPressClient(credentials, timeout=settings.WPBABEL_REQUEST_TIMEOUT)


def run_command(args: argparse.Namespace, settings: WpBabelConfig) -> tuple[int, Optional[str]]:
    """Dispatch a parsed command and return the exit code and a message."""

    if args.command == "languages":
        for code, name in LANGUAGES:
            print(f"{code:4} {name}")
        return 0, None

    if args.command == "pages":
        client = build_client(settings)
        client.authenticate()
        for page in client.list_pages():
            print(f"{page.id:>6}  {page.status:<8} {page.title}")
        return 0, None

    translator = build_translator(settings, args)
    model = args.model or settings.WPBABEL_MODEL

    if args.command == "translate":
        client = build_client(settings)
        summary = translate_page(
            client,
            translator,
            args.page_id,
            args.target_language,
            model,
            progress=print_progress,
            dry_run=args.dry_run,
        )
        if args.dry_run:
            print(json.dumps(summary.payload, ensure_ascii=False, indent=2))
        print_page_summary(summary)
        return 0, None

    input_path = pathlib.Path(args.input_file).expanduser().resolve()
    if not input_path.is_file():
        return 1, "Input file not found. Please provide a readable HTML file."
    output_path = (
        pathlib.Path(args.output).expanduser().resolve()
        if args.output
        else derive_output_path(input_path, args.target_language)
    )
    if output_path == input_path:
        return 1, "The output path matches the input file. Refusing to overwrite the source file."
    if output_path.exists() and not args.force:
        return 1, "The output file already exists. Rename it or use --force."

    result = translator.translate(
        input_path.read_text(encoding="utf-8"),
        language_name(args.target_language),
        model,
        progress=print_progress,
    )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.html, encoding="utf-8")
    print_summary(result)
    print(f"  Output file:     {output_path}")
    return 0, None


def print_summary(result: TranslationResult) -> None:
    """Output a friendly report once processing completes."""

    print("\nTranslation complete.")
    print(f"  Target language: {result.target_language}")
    if result.model:
        print(f"  Model:           {result.model}")
    print(
        f"  Segments:        {result.total_segments} "
        f"({result.total_placeholders} distinct) in {result.total_batches} batches"
    )
    print(f"  Elapsed time:    {result.elapsed_seconds:.2f} seconds")
    if result.error_messages:
        print("  Notes:")
        for message in result.error_messages:
            print(f"    - {message}")


def print_page_summary(summary: PageTranslationSummary) -> None:
    print_summary(summary.result)
    print(f"  Source page:     {summary.source_page.id} ({summary.source_page.title})")
    if summary.created_page is not None:
        print(f"  Draft created:   {summary.created_page.id} ({summary.created_page.title})")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    # Listing languages never talks to a backend, so no credentials are needed.
    provider = "echo" if args.command == "languages" else getattr(args, "provider", None)
    try:
        settings = get_settings(provider=provider)
    except TranslationProviderConfigurationError as exc:
        print(exc)
        return 1

    setup_logger(settings.WPBABEL_LOG_LEVEL, verbose=getattr(args, "verbose", False))

    try:
        exit_code, message = run_command(args, settings)
    except TranslationCancelled as exc:
        exit_code, message = 2, str(exc)
    except DestinationAuthenticationError as exc:
        exit_code, message = 1, f"WordPress rejected the credentials: {exc}"
    except DestinationError as exc:
        exit_code, message = 1, f"WordPress request failed: {exc}"
    except TranslationProviderError as exc:
        exit_code, message = 1, f"Translation failed: {exc}"
    except WpBabelError as exc:
        exit_code, message = 1, str(exc)
    except KeyboardInterrupt:
        exit_code, message = 2, "Translation interrupted by user."

    if message:
        print(message)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
