"""Pydantic request/response schemas for the f1rag API.

Request schemas end with ``Request`` and response schemas with
``Response``.  FastAPI validates incoming JSON against them (422 on
mismatch) and uses them to generate the OpenAPI docs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from f1rag.models.document import Category, SearchFilters


class ChatFilters(BaseModel):
    """Optional metadata filters accepted by ``/chat`` and ``/search``."""

    season: str | None = Field(default=None, pattern=r"^\d{4}$")
    category: Category | None = None
    team: str | None = None
    driver: str | None = None

    def to_search_filters(self) -> SearchFilters | None:
        filters = SearchFilters(
            season=self.season,
            category=self.category.value if self.category else None,
            team=self.team,
            driver=self.driver,
        )
        return filters if filters.as_dict() else None


class ChatRequest(BaseModel):
    """A natural-language question about Formula 1."""

    # Empty messages are rejected in the route with a 400, not a 422.
    message: str = Field(default="", max_length=2000)
    filters: ChatFilters | None = None
    limit: int | None = Field(default=None, ge=1, le=50)


class SourceMetadata(BaseModel):
    """Where an answer's context came from."""

    sources: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    seasons: list[str] = Field(default_factory=list)
    documents_used: int = 0


class ChatResponse(BaseModel):
    """Synthesized answer plus provenance."""

    answer: str
    provider: str | None = None
    used_fallback: bool = False
    metadata: SourceMetadata


class SearchRequest(BaseModel):
    """Retrieval-only query."""

    query: str = Field(..., min_length=1, max_length=2000)
    filters: ChatFilters | None = None
    limit: int | None = Field(default=None, ge=1, le=50)
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class SearchHit(BaseModel):
    """One retrieved document, without its embedding."""

    id: str
    text: str
    source: str
    category: str
    season: str
    track: str | None = None
    driver: str | None = None
    team: str | None = None
    position: int | str | None = None
    points: float | None = None
    similarity: float


class SearchResponse(BaseModel):
    """Ranked retrieval results."""

    query: str
    results: list[SearchHit] = Field(default_factory=list)
    total: int = 0


class StatsResponse(BaseModel):
    """Document-store statistics."""

    total_documents: int = 0
    categories: list[str] = Field(default_factory=list)
    seasons: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    teams: list[str] = Field(default_factory=list)
    drivers: list[str] = Field(default_factory=list)
    documents_by_category: dict[str, int] = Field(default_factory=dict)
    documents_by_season: dict[str, int] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    backend: str
    store: dict[str, Any]
    providers: dict[str, list[str]] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
