"""CSV source adapter.

Exported F1 spreadsheets are messy: padded headers, trailing blank
columns, empty rows between sections.  Keys and values are trimmed,
empty values dropped and rows left with nothing are skipped.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

import structlog

from f1rag.services.ingestion.source_adapters.base import SourceAdapter
from f1rag.utils.errors import SourceReadError

logger = structlog.get_logger(logger_name=__name__)


class CSVSourceAdapter(SourceAdapter):
    suffixes = (".csv",)

    def read(self, path: Path) -> list[dict[str, Any]]:
        try:
            with open(path, encoding="utf-8-sig", newline="") as handle:
                rows = list(csv.DictReader(handle))
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise SourceReadError(message=f"Cannot read CSV {path}: {exc}") from exc

        records: list[dict[str, Any]] = []
        for row in rows:
            cleaned = {
                key.strip(): value.strip()
                for key, value in row.items()
                if isinstance(key, str) and key.strip()
                and isinstance(value, str) and value.strip()
            }
            if cleaned:
                records.append(cleaned)

        logger.debug("csv_read", path=str(path), rows=len(rows), records=len(records))
        return records
