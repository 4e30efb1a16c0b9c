"""Turn raw tabular F1 records into descriptive sentences.

Source files disagree on column names (``Driver`` vs ``driver`` vs
``Driver Name``, ``Points`` vs ``PTS``, ...).  Rather than chains of
``record.get(a) or record.get(b)``, every canonical field is resolved
through one declarative alias table, extended per category where a bare
``Name`` column means something different (a driver in a drivers file, a
team in a teams file).

Each category with a known shape has a sentence template; anything else
gets a generic sentence built from the record's first three populated
fields.  Normalization never raises: missing values render as sentinels
("Unknown Driver"), and a template failure degrades to a sentence naming
only the category, season and source.

Output is deterministic: the same record, category and season always give
byte-identical text, so re-ingesting a file produces identical documents.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

import structlog

from f1rag.models.document import Category, DocumentDraft, PositionOutcome

logger = structlog.get_logger(logger_name=__name__)

# Canonical field -> accepted source keys, in lookup order.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "driver": ("Driver", "driver", "Driver Name", "driverName"),
    "team": ("Team", "team", "Team Name", "teamName"),
    "constructor": ("Constructor", "constructor", "Constructor Name"),
    "track": ("Track", "track", "Circuit", "circuit", "Venue"),
    "country": ("Country", "country", "Nationality", "nationality"),
    "points": ("Points", "points", "PTS", "Pts"),
    "position": ("Position", "position", "Pos", "POS", "Finish"),
    "podiums": ("Podiums", "podiums"),
    "championships": ("World Championships", "championships", "Championships"),
    "grands_prix": ("Grands Prix Entered", "grandsPrix", "Races Entered"),
    "full_team_name": ("Full Team Name", "fullName", "fullTeamName"),
    "base": ("Base", "base", "Headquarters"),
    "team_chief": ("Team Chief", "teamChief", "Team Principal"),
    "power_unit": ("Power Unit", "powerUnit", "Engine"),
    "first_entry": ("First Team Entry", "firstEntry"),
    "laps": ("Laps", "laps"),
    "time": ("Time/Retired", "Time", "time"),
    "fastest_lap": ("Set Fastest Lap", "Fastest Lap", "fastestLap"),
    "q1": ("Q1", "q1", "q1Time"),
    "q2": ("Q2", "q2", "q2Time"),
    "q3": ("Q3", "q3", "q3Time"),
    "round": ("Round", "round", "Rnd"),
    "race": ("Race", "race", "Grand Prix", "Event"),
    "date": ("Date", "date", "Race Date"),
    "season": ("Season", "season", "Year", "year"),
}

# Extra keys tried after the base aliases, for one category only.
CATEGORY_ALIASES: dict[Category, dict[str, tuple[str, ...]]] = {
    Category.DRIVERS: {"driver": ("Name", "name", "Full Name")},
    Category.TEAMS: {"team": ("Name", "name")},
    Category.CONSTRUCTORS: {"constructor": ("Name", "name", "Team", "team")},
}

SENTINELS: dict[str, str] = {
    "driver": "Unknown Driver",
    "team": "Unknown Team",
    "track": "Unknown Track",
    "country": "Unknown Country",
    "base": "Unknown Location",
    "team_chief": "Unknown",
    "power_unit": "Unknown",
    "first_entry": "Unknown",
    "round": "Unknown",
    "race": "Unknown Race",
    "date": "Unknown Date",
}

# Raw position strings -> terminal outcome.
_OUTCOME_ALIASES: dict[str, PositionOutcome] = {
    "DNF": PositionOutcome.DNF,
    "RET": PositionOutcome.DNF,
    "RETIRED": PositionOutcome.DNF,
    "NC": PositionOutcome.DNF,
    "DSQ": PositionOutcome.DSQ,
    "DQ": PositionOutcome.DSQ,
    "DNS": PositionOutcome.DNS,
}

_TRUTHY = {"yes", "y", "true", "1"}


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_field(
    record: Mapping[str, Any],
    field: str,
    category: Category | None = None,
) -> Any | None:
    """Return the first non-blank value for *field*, or ``None``."""
    keys = FIELD_ALIASES.get(field, ())
    if category is not None:
        keys = keys + CATEGORY_ALIASES.get(category, {}).get(field, ())
    for key in keys:
        value = record.get(key)
        if not _is_blank(value):
            return value.strip() if isinstance(value, str) else value
    return None


def format_number(value: Any) -> str:
    """Render numbers without a trailing ``.0``; other values via ``str``."""
    if isinstance(value, bool):
        return str(value)
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return str(value)
    if number != number or number in (float("inf"), float("-inf")):
        return str(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def to_float(value: Any) -> float | None:
    if _is_blank(value) or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def parse_position(value: Any) -> int | PositionOutcome | None:
    """Parse a finishing position into an int or a terminal outcome."""
    if _is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, str):
        outcome = _OUTCOME_ALIASES.get(value.strip().upper())
        if outcome is not None:
            return outcome
    number = to_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def ordinal(number: int) -> str:
    """1 -> "1st", 12 -> "12th", 23 -> "23rd"."""
    if 10 <= number % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def _is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


class _Fields:
    """Resolved view of one record for a given category."""

    def __init__(self, record: Mapping[str, Any], category: Category | None) -> None:
        self._record = record
        self._category = category

    def raw(self, field: str) -> Any | None:
        return resolve_field(self._record, field, self._category)

    def text(self, field: str) -> str:
        value = self.raw(field)
        if value is None:
            return SENTINELS.get(field, "Unknown")
        return format_number(value)

    def number(self, field: str) -> str:
        value = self.raw(field)
        return format_number(value) if value is not None else "0"


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _describe_driver(f: _Fields, season: str) -> str:
    name = f.text("driver")
    text = (
        f"{name} is a Formula 1 driver from {f.text('country')} who raced for "
        f"{f.text('team')} in the {season} season, scoring {f.number('points')} "
        f"championship points."
    )
    extras = []
    if f.raw("podiums") is not None:
        extras.append(f"{f.number('podiums')} career podium finishes")
    if f.raw("championships") is not None:
        extras.append(f"{f.number('championships')} world championships")
    if f.raw("grands_prix") is not None:
        extras.append(f"{f.number('grands_prix')} Grand Prix entries")
    if extras:
        text += f" {name} has " + ", ".join(extras) + "."
    return text


def _describe_team(f: _Fields, season: str) -> str:
    team = f.text("team")
    full_name = f.text("full_team_name") if f.raw("full_team_name") is not None else team
    return (
        f"{team} ({full_name}) is a Formula 1 team based in {f.text('base')} "
        f"competing in the {season} season. The team is run by {f.text('team_chief')} "
        f"with {f.text('power_unit')} power units and has won "
        f"{f.number('championships')} world championships since first entering "
        f"in {f.text('first_entry')}."
    )


def _position_phrase(position: int | PositionOutcome | None) -> str:
    if isinstance(position, PositionOutcome):
        return position.phrase
    if position is None:
        return "finished in position Unknown"
    return f"finished in position {position}"


def _describe_race_result(f: _Fields, season: str) -> str:
    position = parse_position(f.raw("position"))
    points = to_float(f.raw("points")) or 0.0
    text = (
        f"At the {season} {f.text('track')} Grand Prix, {f.text('driver')} driving for "
        f"{f.text('team')} {_position_phrase(position)}"
    )
    if points > 0:
        text += f" and scored {format_number(points)} championship points"
    text += "."

    laps = f.raw("laps")
    time = f.raw("time")
    if laps is not None or time is not None:
        text += f" The result covered {f.number('laps')} laps"
        if time is not None:
            text += f" with a recorded time of {format_number(time)}"
        text += "."
    fastest = f.raw("fastest_lap")
    if fastest is not None and _is_truthy(fastest):
        text += " The driver also set the fastest lap of the race."
    return text


def _describe_qualifying(f: _Fields, season: str) -> str:
    position = parse_position(f.raw("position"))
    if isinstance(position, int):
        placing = f"qualified in {ordinal(position)} position"
    elif isinstance(position, PositionOutcome):
        placing = f"{position.phrase} in qualifying"
    else:
        placing = "qualified in position Unknown"

    best = ""
    for session in ("q3", "q2", "q1"):
        lap = f.raw(session)
        if lap is not None:
            best = f" with a best time of {format_number(lap)} in {session.upper()}"
            break
    return (
        f"In qualifying for the {season} {f.text('track')} Grand Prix, "
        f"{f.text('driver')} of {f.text('team')} {placing}{best}."
    )


def _describe_sprint(f: _Fields, season: str) -> str:
    position = parse_position(f.raw("position"))
    if isinstance(position, int):
        placing = f"finished in {ordinal(position)} position"
    else:
        placing = _position_phrase(position)
    points = to_float(f.raw("points")) or 0.0
    text = (
        f"In the {season} {f.text('track')} sprint race, {f.text('driver')} driving for "
        f"{f.text('team')} {placing}"
    )
    if points > 0:
        text += f" and earned {format_number(points)} sprint points"
    return text + "."


def _describe_calendar(f: _Fields, season: str) -> str:
    return (
        f"Round {f.text('round')} of the {season} Formula 1 World Championship is the "
        f"{f.text('race')} at {f.text('track')} in {f.text('country')} on {f.text('date')}."
    )


_TEMPLATES: dict[Category, Callable[[_Fields, str], str]] = {
    Category.DRIVERS: _describe_driver,
    Category.TEAMS: _describe_team,
    Category.RACE_RESULTS: _describe_race_result,
    Category.QUALIFYING: _describe_qualifying,
    Category.SPRINT: _describe_sprint,
    Category.CALENDAR: _describe_calendar,
}


def _describe_generic(record: Mapping[str, Any], category: str, season: str) -> str:
    pairs = [
        f"{key}: {format_number(value)}"
        for key, value in record.items()
        if not _is_blank(value)
    ][:3]
    details = ", ".join(pairs) if pairs else "no populated fields"
    return f"Formula 1 {category} data from the {season} season with {details}."


def _describe_fallback(category: str, season: str, source: str) -> str:
    return (
        f"Formula 1 {category} record from the {season} season "
        f"(source: {source or 'unknown'})."
    )


def _as_category(category: Category | str) -> Category | None:
    if isinstance(category, Category):
        return category
    try:
        return Category(str(category).strip())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

class RecordNormalizer:
    """Convert one raw record into a :class:`DocumentDraft`.

    The normalizer is stateless; a single instance is shared across files.
    """

    def resolve_season(self, record: Mapping[str, Any], season: str | None = None) -> str:
        """Explicit *season* wins, else the record's season column, else ``""``."""
        if season is not None and str(season).strip():
            return str(season).strip()
        value = resolve_field(record, "season")
        return format_number(value) if value is not None else ""

    def describe(
        self,
        record: Mapping[str, Any],
        category: Category | str,
        season: str | None = None,
        source: str = "",
    ) -> str:
        """Render the descriptive sentence for *record*."""
        resolved = _as_category(category)
        category_name = resolved.value if resolved is not None else str(category)
        season_text = self.resolve_season(record, season) or "unknown"

        template = _TEMPLATES.get(resolved) if resolved is not None else None
        try:
            if template is not None:
                return template(_Fields(record, resolved), season_text)
            return _describe_generic(record, category_name, season_text)
        except (TypeError, ValueError, AttributeError, KeyError) as exc:
            logger.warning(
                "description_fallback",
                category=category_name,
                season=season_text,
                source=source,
                error=str(exc),
            )
            return _describe_fallback(category_name, season_text, source)

    def normalize(
        self,
        record: Mapping[str, Any],
        category: Category | str,
        season: str | None = None,
        source: str = "",
    ) -> DocumentDraft:
        """Build a draft: descriptive text plus the extracted attributes.

        The draft's embedding is empty and nothing is validated here.
        """
        resolved = _as_category(category)
        fields = _Fields(record, resolved)

        def _optional_text(name: str) -> str | None:
            value = fields.raw(name)
            return format_number(value) if value is not None else None

        position = parse_position(fields.raw("position"))
        return DocumentDraft(
            text=self.describe(record, category, season, source),
            source=source,
            category=resolved.value if resolved is not None else str(category),
            season=self.resolve_season(record, season),
            track=_optional_text("track"),
            driver=_optional_text("driver"),
            team=_optional_text("team"),
            constructor=_optional_text("constructor"),
            position=position.value if isinstance(position, PositionOutcome) else position,
            points=to_float(fields.raw("points")),
            metadata={"record": dict(record)},
        )
