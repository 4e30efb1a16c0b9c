"""JSON source adapter.

Accepts a top-level array of objects, or an object wrapping the array in
``data`` or ``records``.  Non-object array entries are ignored.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from f1rag.services.ingestion.source_adapters.base import SourceAdapter
from f1rag.utils.errors import SourceReadError

logger = structlog.get_logger(logger_name=__name__)

_WRAPPER_KEYS = ("data", "records")


class JSONSourceAdapter(SourceAdapter):
    suffixes = (".json",)

    def read(self, path: Path) -> list[dict[str, Any]]:
        try:
            with open(path, encoding="utf-8-sig") as handle:
                payload = json.load(handle)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SourceReadError(message=f"Cannot read JSON {path}: {exc}") from exc

        if isinstance(payload, dict):
            for key in _WRAPPER_KEYS:
                if isinstance(payload.get(key), list):
                    payload = payload[key]
                    break
        if not isinstance(payload, list):
            raise SourceReadError(
                message=f"{path} holds neither an array nor a data/records array"
            )

        records = [item for item in payload if isinstance(item, dict)]
        if len(records) != len(payload):
            logger.warning(
                "json_non_object_entries_skipped",
                path=str(path),
                skipped=len(payload) - len(records),
            )
        return records
