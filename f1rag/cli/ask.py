"""Ask the F1 knowledge base a question from the terminal.

Usage::

    python -m f1rag.cli.ask "Who won the 2024 Monaco Grand Prix?"
    python -m f1rag.cli.ask "Red Bull drivers" --season 2024 --category drivers
    python -m f1rag.cli.ask "Monza qualifying" --search-only --limit 5
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from f1rag.config.settings import Settings
from f1rag.models.document import Category, SearchFilters
from f1rag.utils.errors import ConfigurationError
from f1rag.utils.logging import configure_logging


def _filters_from_args(args: argparse.Namespace) -> SearchFilters | None:
    filters = SearchFilters(
        season=args.season,
        category=args.category,
        team=args.team,
        driver=args.driver,
    )
    return filters if filters.as_dict() else None


async def _handle_ask(args: argparse.Namespace, app_settings: Settings) -> int:
    from f1rag.main import build_services, close_services

    components = build_services(app_settings)
    filters = _filters_from_args(args)
    try:
        if args.search_only:
            results = await components["retrieval_service"].retrieve(
                args.question, filters=filters, limit=args.limit
            )
            if not results:
                print("No matching documents.")
            for rank, result in enumerate(results, start=1):
                doc = result.document
                print(f"[{rank}] {result.similarity:.3f}  {doc.category.value} {doc.season}  {doc.source}")
                print(f"    {doc.text}")
            return 0

        result = await components["answer_service"].answer(
            args.question, filters=filters, limit=args.limit
        )
    finally:
        await close_services(components)

    print(result.answer)
    if result.sources:
        provider = result.provider or "context only"
        print(f"\n-- {len(result.sources)} documents, answered by {provider}")
        print(f"   seasons: {', '.join(result.seasons)}")
        print(f"   categories: {', '.join(result.categories)}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m f1rag.cli.ask",
        description="Ask a question about Formula 1.",
    )
    parser.add_argument("question", help="Natural-language question")
    parser.add_argument("--season", help="Restrict to one season (e.g. 2024)")
    parser.add_argument(
        "--category",
        choices=[c.value for c in Category],
        help="Restrict to one document category",
    )
    parser.add_argument("--team", help="Restrict to one team")
    parser.add_argument("--driver", help="Restrict to one driver")
    parser.add_argument("--limit", type=int, help="Maximum documents to retrieve (1-50)")
    parser.add_argument(
        "--search-only",
        action="store_true",
        dest="search_only",
        help="Print retrieved documents instead of an answer",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for questions."""
    args = _build_parser().parse_args(argv)
    if not args.question.strip():
        print("Error: question must not be empty.", file=sys.stderr)
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)

    try:
        exit_code = asyncio.run(_handle_ask(args, app_settings))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
