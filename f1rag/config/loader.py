"""Ingestion catalog loader.

The catalog is a YAML file with an optional ``defaults`` mapping and a
``sources`` list.  Each source entry is deep-merged over the defaults and
validated into a :class:`~f1rag.models.ingestion.SourceFileConfig`.

Data files that are not in the catalog can still be ingested:
:func:`infer_source_config` guesses category and season from names like
``Formula1_2024season_raceResults.json``.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from f1rag.models.document import Category
from f1rag.models.ingestion import SourceFileConfig
from f1rag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_YEAR_RE = re.compile(r"(19|20)\d{2}")

# Filename keyword -> category, checked in order (raceresults before races).
_CATEGORY_KEYWORDS: tuple[tuple[str, Category], ...] = (
    ("raceresults", Category.RACE_RESULTS),
    ("race_results", Category.RACE_RESULTS),
    ("qualifying", Category.QUALIFYING),
    ("sprint", Category.SPRINT),
    ("calendar", Category.CALENDAR),
    ("schedule", Category.CALENDAR),
    ("standings", Category.STANDINGS),
    ("constructors", Category.CONSTRUCTORS),
    ("drivers", Category.DRIVERS),
    ("teams", Category.TEAMS),
    ("races", Category.RACES),
    ("driverofday", Category.DRIVER_OF_DAY_VOTES),
    ("ratings", Category.VIDEOGAME_RATINGS),
)


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overrides* into a copy of *base*."""
    merged = dict(base)
    for key, value in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_catalog(path: str | Path) -> list[SourceFileConfig]:
    """Load and validate the ingestion catalog.

    Args:
        path: Path to the YAML catalog.

    Returns:
        Catalog entries in file order.

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML, or an
            entry fails validation.
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise ConfigurationError(message=f"Catalog not found: {catalog_path}")

    try:
        with open(catalog_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(message=f"Invalid catalog YAML in {catalog_path}: {exc}") from exc

    if isinstance(raw, list):
        raw = {"sources": raw}
    if not isinstance(raw, dict):
        raise ConfigurationError(message=f"Catalog {catalog_path} must be a mapping or a list")

    defaults = raw.get("defaults") or {}
    entries: list[SourceFileConfig] = []
    for position, entry in enumerate(raw.get("sources") or []):
        if not isinstance(entry, dict):
            raise ConfigurationError(message=f"Catalog entry {position} is not a mapping")
        merged = _deep_merge(defaults, entry)
        if "season" in merged:
            merged["season"] = str(merged["season"])
        try:
            entries.append(SourceFileConfig(**merged))
        except ValidationError as exc:
            raise ConfigurationError(
                message=f"Catalog entry {position} ({entry.get('filename', '?')}) is invalid: {exc}"
            ) from exc

    logger.info("catalog_loaded", path=str(catalog_path), entries=len(entries))
    return entries


def infer_source_config(filename: str, priority: int = 3) -> SourceFileConfig | None:
    """Guess a catalog entry from a data file name.

    Returns ``None`` when no season year can be found in the name.  Files
    whose category cannot be recognised get the generic ``f1_data``
    category.
    """
    name = Path(filename).name
    year = _YEAR_RE.search(name)
    if year is None:
        return None

    lowered = name.lower()
    category = Category.F1_DATA
    for keyword, candidate in _CATEGORY_KEYWORDS:
        if keyword in lowered:
            category = candidate
            break

    return SourceFileConfig(
        filename=filename,
        category=category,
        season=year.group(0),
        priority=priority,
        description=f"Inferred from {name}",
    )
