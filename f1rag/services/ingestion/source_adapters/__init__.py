"""Source adapters, selected by file suffix."""

from __future__ import annotations

from pathlib import Path

from f1rag.services.ingestion.source_adapters.base import SourceAdapter
from f1rag.services.ingestion.source_adapters.csv_adapter import CSVSourceAdapter
from f1rag.services.ingestion.source_adapters.json_adapter import JSONSourceAdapter
from f1rag.utils.errors import SourceReadError

DEFAULT_ADAPTERS: tuple[SourceAdapter, ...] = (JSONSourceAdapter(), CSVSourceAdapter())


def get_adapter(path: Path, adapters: tuple[SourceAdapter, ...] = DEFAULT_ADAPTERS) -> SourceAdapter:
    """Return the adapter for *path*'s suffix.

    Raises
    ------
    SourceReadError
        If no adapter handles the suffix.
    """
    for adapter in adapters:
        if adapter.handles(path):
            return adapter
    raise SourceReadError(message=f"No source adapter for {path.suffix or path.name!r}")


__all__ = [
    "DEFAULT_ADAPTERS",
    "CSVSourceAdapter",
    "JSONSourceAdapter",
    "SourceAdapter",
    "get_adapter",
]
