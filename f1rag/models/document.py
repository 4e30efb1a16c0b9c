"""Document-store data models for the F1 knowledge base.

A raw tabular record (one CSV row or JSON object) becomes a
:class:`DocumentDraft` in the record normalizer, picks up its embedding in
the ingestion service, and is promoted to a validated :class:`Document` at
the store boundary.  Search, statistics and health responses are modelled
here too so both storage backends return identical shapes.

All models are frozen.  ``DocumentDraft`` is deliberately permissive: it is
what the normalizer *could* produce, and validation failures are collected
per record instead of raised while normalizing.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Shortest acceptable document text after stripping whitespace.
MIN_TEXT_LENGTH = 10


class Category(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Closed set of record categories accepted by the store."""

    DRIVERS = "drivers"
    TEAMS = "teams"
    CONSTRUCTORS = "constructors"
    RACES = "races"
    RACE_RESULTS = "race_results"
    QUALIFYING = "qualifying"
    SPRINT = "sprint"
    CALENDAR = "calendar"
    STANDINGS = "standings"
    STATISTICS = "statistics"
    ANALYSIS = "analysis"
    VIDEOGAME_RATINGS = "videogame_ratings"
    DRIVER_OF_DAY_VOTES = "driver_of_day_votes"
    F1_DATA = "f1_data"


class PositionOutcome(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Terminal outcomes recorded in place of a finishing position."""

    DNF = "DNF"
    DSQ = "DSQ"
    DNS = "DNS"

    @property
    def phrase(self) -> str:
        return _OUTCOME_PHRASES[self]


_OUTCOME_PHRASES = {
    PositionOutcome.DNF: "did not finish",
    PositionOutcome.DSQ: "was disqualified",
    PositionOutcome.DNS: "did not start",
}


class DocumentDraft(BaseModel):
    """A document as produced by normalization, before validation.

    No constraint is enforced here beyond basic types; see
    :func:`f1rag.providers.document_store.validation.validate_draft`.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Descriptive sentence generated from the record.")
    embedding: list[float] = Field(
        default_factory=list,
        description="Embedding vector; empty until the ingestion service fills it.",
    )
    source: str = Field(default="", description="Origin file or feed of the record.")
    category: str = Field(default="", description="Category name, checked against Category.")
    season: str = Field(default="", description="Season as found; expected to be a 4-digit year.")
    track: str | None = Field(default=None, description="Circuit or race name.")
    driver: str | None = Field(default=None, description="Driver name.")
    team: str | None = Field(default=None, description="Team name.")
    constructor: str | None = Field(default=None, description="Constructor name.")
    position: int | str | None = Field(
        default=None,
        description="Finishing position, or a DNF/DSQ/DNS outcome.",
    )
    points: float | None = Field(default=None, description="Points scored.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="The raw source record plus ingestion bookkeeping.",
    )


class Document(BaseModel):
    """A validated, stored unit of the knowledge base.

    Invariants: text is not trivially short, category belongs to the closed
    set, season is a 4-digit year, position is positive or a terminal
    outcome, points are non-negative.  The embedding length is checked
    against the deployment dimension by the store, not here, because
    search results may omit the vector.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Store-assigned identifier.")
    text: str = Field(description="Descriptive sentence.")
    embedding: list[float] = Field(
        default_factory=list,
        description="Embedding vector (may be omitted on reads).",
    )
    source: str = Field(min_length=1, description="Origin file or feed.")
    category: Category = Field(description="Record category.")
    season: str = Field(pattern=r"^\d{4}$", description="Season year.")
    track: str | None = Field(default=None, description="Circuit or race name.")
    driver: str | None = Field(default=None, description="Driver name.")
    team: str | None = Field(default=None, description="Team name.")
    constructor: str | None = Field(default=None, description="Constructor name.")
    position: int | PositionOutcome | None = Field(
        default=None,
        description="Positive finishing position or terminal outcome.",
    )
    points: float | None = Field(default=None, ge=0.0, description="Points scored.")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Raw record and extras.")
    created_at: datetime | None = Field(default=None, description="Insertion timestamp.")

    @field_validator("text")
    @classmethod
    def _text_not_trivial(cls, value: str) -> str:
        if len(value.strip()) < MIN_TEXT_LENGTH:
            raise ValueError(f"text must be at least {MIN_TEXT_LENGTH} characters")
        return value

    @field_validator("position")
    @classmethod
    def _position_positive(cls, value: int | PositionOutcome | None) -> int | PositionOutcome | None:
        if isinstance(value, int) and not isinstance(value, PositionOutcome) and value < 1:
            raise ValueError("position must be a positive integer")
        return value


class SearchFilters(BaseModel):
    """Optional equality filters applied to search and lookup."""

    model_config = ConfigDict(frozen=True)

    season: str | None = Field(default=None, description="Season year.")
    category: str | None = Field(default=None, description="Category name.")
    team: str | None = Field(default=None, description="Team name.")
    driver: str | None = Field(default=None, description="Driver name.")

    def as_dict(self) -> dict[str, str]:
        """Return only the filters that are set."""
        return {k: v for k, v in self.model_dump().items() if v}


class SearchQuery(BaseModel):
    """A vector similarity query."""

    model_config = ConfigDict(frozen=True)

    embedding: list[float] = Field(description="Query embedding.")
    threshold: float = Field(default=0.7, ge=0.0, le=1.0, description="Minimum similarity.")
    limit: int = Field(default=10, ge=1, le=50, description="Maximum results.")
    filters: SearchFilters = Field(default_factory=SearchFilters, description="Equality filters.")


class SearchResult(BaseModel):
    """A document paired with its similarity to the query."""

    model_config = ConfigDict(frozen=True)

    document: Document = Field(description="The matching document.")
    similarity: float = Field(ge=0.0, le=1.0, description="Similarity score in [0, 1].")


class InsertFailure(BaseModel):
    """One draft rejected by the store, by position in the submitted list."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="Index of the draft in the insert call.")
    reason: str = Field(description="Why the draft was rejected.")
    write_failed: bool = Field(
        default=False,
        description="True when the draft was valid but the backend did not store it.",
    )


class InsertResult(BaseModel):
    """Outcome of a store insert call."""

    model_config = ConfigDict(frozen=True)

    inserted: list[Document] = Field(default_factory=list, description="Stored documents.")
    failures: list[InsertFailure] = Field(default_factory=list, description="Rejected drafts.")

    @property
    def inserted_count(self) -> int:
        return len(self.inserted)


class StoreStatistics(BaseModel):
    """Aggregate counts over the stored corpus."""

    model_config = ConfigDict(frozen=True)

    total_documents: int = Field(default=0, ge=0)
    categories: list[str] = Field(default_factory=list)
    seasons: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    teams: list[str] = Field(default_factory=list)
    drivers: list[str] = Field(default_factory=list)
    documents_by_category: dict[str, int] = Field(default_factory=dict)
    documents_by_season: dict[str, int] = Field(default_factory=dict)


class HealthStatus(BaseModel):
    """Result of a store health probe."""

    model_config = ConfigDict(frozen=True)

    status: str = Field(description='"healthy" or "unhealthy".')
    backend: str = Field(description="Provider name of the probed store.")
    configured: bool = Field(default=False)
    connection_working: bool = Field(default=False)
    tables_exist: bool = Field(default=False)
    documents_count: int = Field(default=0, ge=0)
    error: str | None = Field(default=None)

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"
