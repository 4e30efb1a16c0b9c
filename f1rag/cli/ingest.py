"""Command-line management of the f1rag document store.

Usage::

    python -m f1rag.cli.ingest run --data-dir data --priority 2
    python -m f1rag.cli.ingest run --validate-only --include-historical
    python -m f1rag.cli.ingest run --discover --data-dir data
    python -m f1rag.cli.ingest init
    python -m f1rag.cli.ingest stats
    python -m f1rag.cli.ingest health
    python -m f1rag.cli.ingest clear --yes

Every command exits with status 1 when the configuration is incomplete
(no document backend, unknown embedding backend, missing catalog, ...).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from f1rag.config.loader import infer_source_config, load_catalog
from f1rag.config.settings import Settings
from f1rag.models.ingestion import IngestionOptions, IngestionReport, SourceFileConfig
from f1rag.utils.errors import ConfigurationError
from f1rag.utils.logging import configure_logging


# ---------------------------------------------------------------------------
# Catalog & options
# ---------------------------------------------------------------------------


def _discover_catalog(data_dir: Path) -> list[SourceFileConfig]:
    """Infer catalog entries from the data files in *data_dir*."""
    entries: list[SourceFileConfig] = []
    for path in sorted(data_dir.rglob("*")):
        if path.suffix.lower() not in {".json", ".csv"} or not path.is_file():
            continue
        entry = infer_source_config(path.relative_to(data_dir).as_posix())
        if entry is not None:
            entries.append(entry)
    return entries


def _options_from_args(args: argparse.Namespace, app_settings: Settings) -> IngestionOptions:
    overrides: dict[str, Any] = {
        "validate_only": args.validate_only,
        "include_historical": args.include_historical,
    }
    if args.max_records is not None:
        overrides["max_records_per_file"] = args.max_records
    if args.priority is not None:
        overrides["priority_threshold"] = args.priority
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.delay is not None:
        overrides["embedding_delay"] = args.delay
    return app_settings.default_ingestion_options().model_copy(update=overrides)


def _print_report(report: IngestionReport) -> None:
    mode = "validation" if report.validate_only else "ingestion"
    print(f"\nF1 {mode} complete (run {report.run_id}):")
    print(f"  Files processed:    {report.processed_files}/{report.total_files}")
    print(f"  Files skipped:      {report.skipped_files}")
    print(f"  Records attempted:  {report.attempted}")
    print(f"  Succeeded:          {report.succeeded}")
    print(f"  Validation failed:  {report.validation_failed}")
    print(f"  Embedding failed:   {report.embedding_failed}")
    print(f"  Insert failed:      {report.insert_failed}")
    print(f"  Success rate:       {report.success_rate:.1%}")
    print(f"  Time:               {report.processing_time:.2f}s")

    if report.files:
        print("\n  Per file:")
        for f in report.files:
            if f.skipped:
                print(f"    {f.filename:<40} skipped ({f.skip_reason})")
            else:
                print(f"    {f.filename:<40} {f.succeeded}/{f.attempted}")

    if report.errors:
        print(f"\n  First {len(report.errors)} errors:")
        for message in report.errors:
            print(f"    - {message}")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_run(args: argparse.Namespace, app_settings: Settings) -> int:
    from f1rag.main import build_services, close_services

    data_dir = Path(args.data_dir or app_settings.data_dir)
    if args.discover:
        catalog = _discover_catalog(data_dir)
        print(f"Discovered {len(catalog)} data files in {data_dir}")
    else:
        catalog = load_catalog(args.catalog or app_settings.catalog_path)
    options = _options_from_args(args, app_settings)

    components = build_services(app_settings)
    try:
        store = components["document_store"]
        print(f"Backend:    {store.get_provider_name()}")
        print(f"Embedding:  {', '.join(components['embedding_provider_names'])}")
        if not options.validate_only:
            await store.initialize()
        report = await components["ingestion_service"].ingest(data_dir, catalog, options)
    finally:
        await close_services(components)

    _print_report(report)
    return 0


async def _handle_init(app_settings: Settings) -> int:
    from f1rag.main import build_services, close_services

    components = build_services(app_settings)
    try:
        store = components["document_store"]
        await store.initialize()
        print(f"{store.get_provider_name()} store initialized.")
    finally:
        await close_services(components)
    return 0


async def _handle_stats(app_settings: Settings) -> int:
    from f1rag.main import build_services, close_services

    components = build_services(app_settings)
    try:
        stats = await components["document_store"].get_statistics()
    finally:
        await close_services(components)

    print("F1 Knowledge Base Statistics")
    print("=" * 40)
    print(f"  Total documents:  {stats.total_documents}")
    print(f"  Categories:       {', '.join(stats.categories) or '-'}")
    print(f"  Seasons:          {', '.join(stats.seasons) or '-'}")
    print(f"  Sources:          {len(stats.sources)}")
    print(f"  Teams:            {len(stats.teams)}")
    print(f"  Drivers:          {len(stats.drivers)}")
    if stats.documents_by_category:
        print("\n  Documents by category:")
        for category, count in sorted(stats.documents_by_category.items()):
            print(f"    {category:<18} {count}")
    return 0


async def _handle_health(app_settings: Settings) -> int:
    from f1rag.main import build_services, close_services

    components = build_services(app_settings)
    try:
        status = await components["document_store"].health_check()
    finally:
        await close_services(components)

    print(f"Backend:            {status.backend}")
    print(f"Status:             {status.status}")
    print(f"Configured:         {status.configured}")
    print(f"Connection working: {status.connection_working}")
    print(f"Tables exist:       {status.tables_exist}")
    print(f"Documents:          {status.documents_count}")
    if status.error:
        print(f"Error:              {status.error}")
    return 0 if status.is_healthy else 2


async def _handle_clear(args: argparse.Namespace, app_settings: Settings) -> int:
    from f1rag.main import build_services, close_services

    if not args.yes:
        answer = input("Delete ALL documents from the store? [y/N] ")
        if answer.strip().lower() not in {"y", "yes"}:
            print("  Aborted.")
            return 0

    components = build_services(app_settings)
    try:
        store = components["document_store"]
        await store.clear()
        print(f"{store.get_provider_name()} store cleared.")
    finally:
        await close_services(components)
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m f1rag.cli.ingest",
        description="Manage the f1rag Formula 1 document store.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Store commands")

    # -- run --
    run_parser = subparsers.add_parser("run", help="Ingest catalogued data files")
    run_parser.add_argument("--data-dir", dest="data_dir", help="Directory holding the data files")
    run_parser.add_argument("--catalog", help="Path to the YAML source catalog")
    run_parser.add_argument(
        "--discover",
        action="store_true",
        help="Infer the catalog from data file names instead of reading --catalog",
    )
    run_parser.add_argument(
        "--max-records", dest="max_records", type=int, help="Records read per file"
    )
    run_parser.add_argument(
        "--priority", type=int, help="Highest catalog priority to ingest (1 = most important)"
    )
    run_parser.add_argument(
        "--batch-size", dest="batch_size", type=int, help="Concurrent embedding calls per chunk"
    )
    run_parser.add_argument(
        "--delay", type=float, help="Seconds between embedding chunks"
    )
    run_parser.add_argument(
        "--validate-only",
        action="store_true",
        dest="validate_only",
        help="Read, normalize and validate without embedding or storing",
    )
    run_parser.add_argument(
        "--include-historical",
        action="store_true",
        dest="include_historical",
        help="Also ingest seasons before 2022",
    )

    subparsers.add_parser("init", help="Create the table or collection")
    subparsers.add_parser("stats", help="Show store statistics")
    subparsers.add_parser("health", help="Probe the document store")

    clear_parser = subparsers.add_parser("clear", help="Delete every document")
    clear_parser.add_argument(
        "--yes", "-y", action="store_true", help="Skip confirmation prompt"
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ingestion tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)

    try:
        if args.command == "run":
            exit_code = asyncio.run(_handle_run(args, app_settings))
        elif args.command == "init":
            exit_code = asyncio.run(_handle_init(app_settings))
        elif args.command == "stats":
            exit_code = asyncio.run(_handle_stats(app_settings))
        elif args.command == "health":
            exit_code = asyncio.run(_handle_health(app_settings))
        elif args.command == "clear":
            exit_code = asyncio.run(_handle_clear(args, app_settings))
        else:
            parser.print_help()
            exit_code = 1
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
