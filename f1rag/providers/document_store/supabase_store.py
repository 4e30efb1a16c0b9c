"""Supabase (PostgREST + pgvector) document store.

Implements :class:`~f1rag.interfaces.document_store.IDocumentStore` over
Supabase's REST interface with a single shared ``httpx.AsyncClient``.
Ranking happens in Postgres: ``search_f1_documents`` computes
``1 - cosine_distance`` and filters by threshold server side, and
``get_f1_statistics`` aggregates the corpus in one call.  Both functions,
the table and its indexes ship in ``schema.sql`` next to this module.

The ``position`` column is an integer, so terminal outcomes (DNF/DSQ/DNS)
are stored in ``metadata.position_outcome`` and restored on read.
"""

from __future__ import annotations

import json
import re
import time
from importlib import resources
from typing import Any

import httpx
import psycopg
import structlog
from pydantic import ValidationError

from f1rag.config.settings import Settings
from f1rag.interfaces.document_store import IDocumentStore
from f1rag.models.document import (
    Document,
    DocumentDraft,
    HealthStatus,
    InsertResult,
    PositionOutcome,
    SearchFilters,
    SearchQuery,
    SearchResult,
    StoreStatistics,
)
from f1rag.providers.document_store.validation import lookup_limit, partition_drafts
from f1rag.utils.errors import ConfigurationError, DocumentStoreError

logger = structlog.get_logger(logger_name=__name__)

# PostgREST / Postgres codes meaning the table or function does not exist.
_MISSING_TABLE_CODES = {"42P01", "PGRST205", "PGRST202", "42883"}

_NIL_UUID = "00000000-0000-0000-0000-000000000000"

_COLUMNS = (
    "id,text,source,category,season,track,driver,team,constructor,"
    "position,points,metadata,created_at"
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Characters with meaning inside a PostgREST ``or=(...)`` expression.
_POSTGREST_RESERVED = re.compile(r'[,()"*\\]')

_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")


def load_schema_sql(table: str, dimension: int) -> str:
    """Return the packaged DDL with table name and dimension filled in."""
    template = (
        resources.files("f1rag.providers.document_store")
        .joinpath("schema.sql")
        .read_text(encoding="utf-8")
    )
    return template.replace("__TABLE__", table).replace("__DIMENSION__", str(dimension))


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


class SupabaseDocumentStore(IDocumentStore):
    """Document store backed by a Supabase project."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        if not _IDENTIFIER_RE.match(settings.supabase_table):
            raise ConfigurationError(
                message=f"Invalid SUPABASE_TABLE {settings.supabase_table!r}",
                provider_name="supabase",
            )
        self._url = settings.supabase_url.rstrip("/")
        self._key = settings.supabase_key
        self._db_url = settings.supabase_db_url
        self._table = settings.supabase_table
        self._dimension = settings.embedding_dimension
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        url = f"{self._url}/rest/v1/{path}"
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._headers(prefer),
            )
        except httpx.HTTPError as exc:
            raise DocumentStoreError(
                message=f"{operation} request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code >= 400:
            code: str | None = str(response.status_code)
            detail = response.text
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                code = payload.get("code") or code
                detail = payload.get("message") or detail
            raise DocumentStoreError(
                message=f"{operation} failed ({response.status_code}): {detail}",
                provider_name=self.get_provider_name(),
                code=code,
            )
        return response

    def _json(self, response: httpx.Response, operation: str, expected: type) -> Any:
        """Decode a 2xx body, which must be a JSON ``expected`` (list or dict).

        Gateways in front of PostgREST can answer 200 with an HTML page;
        that surfaces as ``DocumentStoreError`` like any other store failure.
        """
        try:
            payload = response.json()
        except ValueError as exc:
            raise DocumentStoreError(
                message=f"{operation} returned invalid JSON",
                provider_name=self.get_provider_name(),
            ) from exc
        if payload is None:
            return expected()
        if not isinstance(payload, expected):
            raise DocumentStoreError(
                message=f"{operation} returned {type(payload).__name__}, expected {expected.__name__}",
                provider_name=self.get_provider_name(),
            )
        return payload

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _document_to_row(document: Document) -> dict[str, Any]:
        metadata = dict(document.metadata)
        position: int | None = None
        if isinstance(document.position, PositionOutcome):
            metadata["position_outcome"] = document.position.value
        else:
            position = document.position
        return {
            "text": document.text,
            "embedding": document.embedding,
            "source": document.source,
            "category": document.category.value,
            "season": document.season,
            "track": document.track,
            "driver": document.driver,
            "team": document.team,
            "constructor": document.constructor,
            "position": position,
            "points": document.points,
            "metadata": metadata,
        }

    def _row_to_document(self, row: Any) -> Document | None:
        if not isinstance(row, dict):
            logger.warning("supabase_row_invalid", error=f"expected object, got {type(row).__name__}")
            return None
        data = {k: v for k, v in row.items() if k != "similarity"}
        try:
            metadata = dict(data.get("metadata") or {})
            outcome = metadata.pop("position_outcome", None)
            if outcome and data.get("position") is None:
                data["position"] = outcome
            data["metadata"] = metadata

            embedding = data.get("embedding")
            if isinstance(embedding, str):
                data["embedding"] = json.loads(embedding)
            elif embedding is None:
                data.pop("embedding", None)

            return Document.model_validate(data)
        except (ValidationError, ValueError, TypeError) as exc:
            logger.warning("supabase_row_invalid", id=row.get("id"), error=str(exc))
            return None

    def _rows_to_documents(self, rows: list[Any] | None) -> list[Document]:
        documents = (self._row_to_document(row) for row in rows or [])
        return [doc for doc in documents if doc is not None]

    # ------------------------------------------------------------------
    # IDocumentStore implementation
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Apply ``schema.sql`` when a database URL is set, else check the table exists."""
        if self._db_url:
            sql = load_schema_sql(self._table, self._dimension)
            try:
                async with await psycopg.AsyncConnection.connect(
                    self._db_url, autocommit=True
                ) as conn:
                    await conn.execute(sql)
            except psycopg.Error as exc:
                raise DocumentStoreError(
                    message=f"Applying schema failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            logger.info("supabase_schema_applied", table=self._table, dimension=self._dimension)
            return

        try:
            await self._request(
                "GET", self._table, "table probe", params={"select": "id", "limit": 1}
            )
        except DocumentStoreError as exc:
            if exc.code in _MISSING_TABLE_CODES:
                raise ConfigurationError(
                    message=f"Table {self._table!r} does not exist. Run schema.sql in the "
                    "Supabase SQL editor or set SUPABASE_DB_URL so it can be applied.",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise
        logger.info("supabase_table_ready", table=self._table)

    async def insert(self, drafts: list[DocumentDraft]) -> InsertResult:
        accepted, failures = partition_drafts(drafts, self._dimension)
        if failures:
            logger.warning(
                "supabase_insert_validation_failures",
                rejected=len(failures),
                submitted=len(drafts),
            )
        if not accepted:
            return InsertResult(inserted=[], failures=failures)

        start = time.monotonic()
        rows = [self._document_to_row(doc) for _, doc in accepted]
        response = await self._request(
            "POST",
            self._table,
            "insert",
            body=rows,
            prefer="return=representation",
        )
        returned = self._json(response, "insert", list)
        inserted = self._rows_to_documents(returned)

        logger.info(
            "supabase_insert",
            inserted=len(inserted),
            rejected=len(failures),
            duration_ms=round((time.monotonic() - start) * 1000),
        )
        return InsertResult(inserted=inserted, failures=failures)

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        body = {
            "query_embedding": query.embedding,
            "match_threshold": query.threshold,
            "match_count": query.limit,
            "season_filter": query.filters.season or None,
            "category_filter": query.filters.category or None,
            "team_filter": query.filters.team or None,
            "driver_filter": query.filters.driver or None,
        }
        start = time.monotonic()
        response = await self._request("POST", "rpc/search_f1_documents", "search", body=body)

        results: list[SearchResult] = []
        for row in self._json(response, "search", list):
            document = self._row_to_document(row)
            if document is None:
                continue
            similarity = _clamp(float(row.get("similarity") or 0.0))
            if similarity >= query.threshold:
                results.append(SearchResult(document=document, similarity=similarity))

        results.sort(key=lambda r: r.similarity, reverse=True)
        results = results[: query.limit]
        logger.info(
            "supabase_search",
            results=len(results),
            threshold=query.threshold,
            duration_ms=round((time.monotonic() - start) * 1000),
        )
        return results

    async def text_search(
        self,
        text: str,
        filters: SearchFilters | None = None,
        limit: int = 10,
    ) -> list[Document]:
        term = " ".join(_POSTGREST_RESERVED.sub(" ", text).split())
        if not term:
            return []
        params: dict[str, Any] = {
            "select": _COLUMNS,
            "or": f"(text.ilike.*{term}*,driver.ilike.*{term}*,team.ilike.*{term}*)",
            "limit": max(1, limit),
        }
        for field, value in (filters or SearchFilters()).as_dict().items():
            params[field] = f"eq.{value}"

        response = await self._request("GET", self._table, "text search", params=params)
        documents = self._rows_to_documents(self._json(response, "text search", list))
        logger.info("supabase_text_search", term=term, results=len(documents))
        return documents

    async def get_by_filters(
        self,
        filters: SearchFilters,
        limit: int | None = None,
    ) -> list[Document]:
        params: dict[str, Any] = {
            "select": _COLUMNS,
            "order": "created_at.desc",
            "limit": lookup_limit(limit),
        }
        for field, value in filters.as_dict().items():
            params[field] = f"eq.{value}"
        response = await self._request("GET", self._table, "get by filters", params=params)
        return self._rows_to_documents(self._json(response, "get by filters", list))

    async def get_statistics(self) -> StoreStatistics:
        response = await self._request("POST", "rpc/get_f1_statistics", "statistics", body={})
        payload = self._json(response, "statistics", dict)
        return StoreStatistics(
            total_documents=int(payload.get("totalDocuments") or 0),
            categories=payload.get("categories") or [],
            seasons=payload.get("seasons") or [],
            sources=payload.get("sources") or [],
            teams=payload.get("teams") or [],
            drivers=payload.get("drivers") or [],
            documents_by_category=payload.get("documentsByCategory") or {},
            documents_by_season=payload.get("documentsBySeason") or {},
        )

    async def clear(self) -> None:
        await self._request("DELETE", self._table, "clear", params={"id": f"neq.{_NIL_UUID}"})
        logger.info("supabase_cleared", table=self._table)

    async def count(self) -> int:
        response = await self._request(
            "GET",
            self._table,
            "count",
            params={"select": "id", "limit": 1},
            prefer="count=exact",
        )
        match = _CONTENT_RANGE_TOTAL.search(response.headers.get("content-range", ""))
        return int(match.group(1)) if match else 0

    async def health_check(self) -> HealthStatus:
        if not self.is_configured():
            return HealthStatus(
                status="unhealthy",
                backend=self.get_provider_name(),
                error="SUPABASE_URL or key not set",
            )
        try:
            total = await self.count()
        except DocumentStoreError as exc:
            table_missing = exc.code in _MISSING_TABLE_CODES
            return HealthStatus(
                status="unhealthy",
                backend=self.get_provider_name(),
                configured=True,
                connection_working=table_missing,
                tables_exist=False,
                error=str(exc),
            )
        return HealthStatus(
            status="healthy",
            backend=self.get_provider_name(),
            configured=True,
            connection_working=True,
            tables_exist=True,
            documents_count=total,
        )

    def get_provider_name(self) -> str:
        return "supabase"

    def is_configured(self) -> bool:
        return bool(self._url and self._key)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
