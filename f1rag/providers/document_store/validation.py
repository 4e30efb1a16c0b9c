"""Draft validation shared by every document store.

Each backend calls :func:`partition_drafts` before sending anything, so
the document model's invariants (non-trivial text, known category, 4-digit
season, positive position or terminal outcome, non-negative points,
embedding of the deployment dimension) hold no matter which store is in
use.  All violated rules are reported, not just the first.
"""

from __future__ import annotations

import re
from numbers import Real

from pydantic import ValidationError

from f1rag.models.document import (
    MIN_TEXT_LENGTH,
    Category,
    Document,
    DocumentDraft,
    InsertFailure,
    PositionOutcome,
)
from f1rag.utils.errors import DocumentValidationError

_SEASON_RE = re.compile(r"^\d{4}$")
_CATEGORIES = {c.value for c in Category}
_OUTCOMES = {o.value for o in PositionOutcome}

DEFAULT_LOOKUP_LIMIT = 50
MAX_LOOKUP_LIMIT = 100


def lookup_limit(limit: int | None) -> int:
    """Row cap for ``get_by_filters``: 50 when unset, always within 1..100."""
    return max(1, min(limit or DEFAULT_LOOKUP_LIMIT, MAX_LOOKUP_LIMIT))


def collect_violations(draft: DocumentDraft, dimension: int | None = None) -> list[str]:
    """Return every rule *draft* violates (empty when valid).

    ``dimension=None`` skips the embedding checks; the ingestion service
    uses that to pre-validate records before they are embedded.
    """
    reasons: list[str] = []

    if len(draft.text.strip()) < MIN_TEXT_LENGTH:
        reasons.append(f"text shorter than {MIN_TEXT_LENGTH} characters")
    if not draft.source.strip():
        reasons.append("source is empty")
    if draft.category not in _CATEGORIES:
        reasons.append(f"unknown category {draft.category!r}")
    if not _SEASON_RE.match(draft.season or ""):
        reasons.append(f"season {draft.season!r} is not a 4-digit year")

    position = draft.position
    if isinstance(position, str):
        if position not in _OUTCOMES:
            reasons.append(f"position {position!r} is not a number or DNF/DSQ/DNS")
    elif position is not None and position < 1:
        reasons.append(f"position {position} is not positive")

    if draft.points is not None and draft.points < 0:
        reasons.append(f"points {draft.points} is negative")

    if dimension is not None:
        if any(isinstance(v, bool) or not isinstance(v, Real) for v in draft.embedding):
            reasons.append("embedding contains non-numeric values")
        if len(draft.embedding) != dimension:
            reasons.append(
                f"embedding has {len(draft.embedding)} dimensions, expected {dimension}"
            )
    return reasons


def validate_draft(draft: DocumentDraft, dimension: int | None = None) -> Document:
    """Promote *draft* to a :class:`Document`.

    Raises
    ------
    DocumentValidationError
        Listing every violated rule.
    """
    reasons = collect_violations(draft, dimension)
    if reasons:
        raise DocumentValidationError(message="; ".join(reasons), reasons=reasons)
    try:
        return Document(
            text=draft.text,
            embedding=list(draft.embedding),
            source=draft.source,
            category=Category(draft.category),
            season=draft.season,
            track=draft.track,
            driver=draft.driver,
            team=draft.team,
            constructor=draft.constructor,
            position=draft.position,
            points=draft.points,
            metadata=dict(draft.metadata),
        )
    except ValidationError as exc:
        messages = [err["msg"] for err in exc.errors()]
        raise DocumentValidationError(message="; ".join(messages), reasons=messages) from exc


def partition_drafts(
    drafts: list[DocumentDraft],
    dimension: int | None = None,
) -> tuple[list[tuple[int, Document]], list[InsertFailure]]:
    """Split drafts into valid documents (with their input index) and failures."""
    accepted: list[tuple[int, Document]] = []
    failures: list[InsertFailure] = []
    for index, draft in enumerate(drafts):
        try:
            accepted.append((index, validate_draft(draft, dimension)))
        except DocumentValidationError as exc:
            failures.append(InsertFailure(index=index, reason=exc.message))
    return accepted, failures
