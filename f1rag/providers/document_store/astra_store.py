"""DataStax Astra DB (Data API) document store.

Implements :class:`~f1rag.interfaces.document_store.IDocumentStore` by
sending JSON commands (``findCollections``, ``insertMany``, ``find``,
``deleteMany``, ``countDocuments``) to the Astra Data API over a shared
``httpx.AsyncClient``.

Astra only offers a vector *sort*: ``find`` with ``sort: {"$vector": q}``
returns the nearest documents but no comparable score.  The store asks for
the stored vectors back and recomputes cosine similarity with numpy, then
applies the threshold, so scores mean the same thing as the Supabase
backend's ``1 - cosine_distance``.

There is no server-side aggregation or substring matching either; the
statistics and lexical search page through ``find`` (``nextPageState``)
and work client side.
"""

from __future__ import annotations

import time
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, AsyncIterator

import httpx
import numpy as np
import structlog
from pydantic import ValidationError

from f1rag.config.settings import Settings
from f1rag.interfaces.document_store import IDocumentStore
from f1rag.models.document import (
    Document,
    DocumentDraft,
    HealthStatus,
    InsertFailure,
    InsertResult,
    PositionOutcome,
    SearchFilters,
    SearchQuery,
    SearchResult,
    StoreStatistics,
)
from f1rag.providers.document_store.validation import lookup_limit, partition_drafts
from f1rag.utils.errors import DocumentStoreError

logger = structlog.get_logger(logger_name=__name__)

_INSERT_CHUNK = 20

_COLLECTION_MISSING = "COLLECTION_NOT_EXIST"

_STATS_PROJECTION = {"category": 1, "season": 1, "source": 1, "team": 1, "driver": 1}


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity clamped to [0, 1]; 0.0 for zero or mismatched vectors."""
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape or va.size == 0:
        return 0.0
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(min(1.0, max(0.0, float(np.dot(va, vb)) / denom)))


class AstraDocumentStore(IDocumentStore):
    """Document store backed by an Astra DB vector collection."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._token = settings.astra_db_application_token
        self._endpoint = settings.astra_db_api_endpoint.rstrip("/")
        self._namespace = settings.astra_db_namespace
        self._collection = settings.astra_db_collection
        self._dimension = settings.embedding_dimension
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _command(
        self,
        command: dict[str, Any],
        *,
        collection_level: bool = True,
    ) -> dict[str, Any]:
        """POST one Data API command and return the decoded response.

        Raises
        ------
        DocumentStoreError
            On transport failure, non-2xx status, or an ``errors`` entry in
            the response body.  ``code`` carries the first ``errorCode``.
        """
        name = next(iter(command))
        url = f"{self._endpoint}/api/json/v1/{self._namespace}"
        if collection_level:
            url = f"{url}/{self._collection}"
        headers = {"Token": self._token, "Content-Type": "application/json"}

        try:
            response = await self._client.post(url, json=command, headers=headers)
        except httpx.HTTPError as exc:
            raise DocumentStoreError(
                message=f"{name} request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code >= 400:
            raise DocumentStoreError(
                message=f"{name} failed ({response.status_code}): {response.text}",
                provider_name=self.get_provider_name(),
                code=str(response.status_code),
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise DocumentStoreError(
                message=f"{name} returned invalid JSON",
                provider_name=self.get_provider_name(),
            ) from exc

        errors = payload.get("errors") or []
        if errors:
            first = errors[0]
            raise DocumentStoreError(
                message=f"{name} failed: {first.get('message', first)}",
                provider_name=self.get_provider_name(),
                code=first.get("errorCode"),
            )
        return payload

    async def _find_pages(
        self,
        filter_: dict[str, Any],
        projection: dict[str, Any],
    ) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield ``find`` result pages until ``nextPageState`` runs out."""
        page_state: str | None = None
        while True:
            options: dict[str, Any] = {}
            if page_state:
                options["pageState"] = page_state
            payload = await self._command(
                {"find": {"filter": filter_, "projection": projection, "options": options}}
            )
            data = payload.get("data") or {}
            yield data.get("documents") or []
            page_state = data.get("nextPageState")
            if not page_state:
                break

    # ------------------------------------------------------------------
    # Document mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _document_to_record(document: Document) -> dict[str, Any]:
        position = document.position
        if isinstance(position, PositionOutcome):
            position = position.value
        return {
            "_id": str(uuid.uuid4()),
            "text": document.text,
            "$vector": document.embedding,
            "source": document.source,
            "category": document.category.value,
            "season": document.season,
            "track": document.track,
            "driver": document.driver,
            "team": document.team,
            "constructor": document.constructor,
            "position": position,
            "points": document.points,
            "metadata": document.metadata,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def _record_to_document(record: dict[str, Any]) -> Document | None:
        data = {k: v for k, v in record.items() if k not in ("_id", "$vector", "$similarity")}
        data["id"] = record.get("_id")
        if isinstance(record.get("$vector"), list):
            data["embedding"] = record["$vector"]
        try:
            return Document.model_validate(data)
        except ValidationError as exc:
            logger.warning("astra_record_invalid", id=record.get("_id"), error=str(exc))
            return None

    def _records_to_documents(self, records: list[dict[str, Any]]) -> list[Document]:
        documents = (self._record_to_document(r) for r in records)
        return [doc for doc in documents if doc is not None]

    # ------------------------------------------------------------------
    # IDocumentStore implementation
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the vector collection if it does not exist."""
        payload = await self._command({"findCollections": {}}, collection_level=False)
        existing = (payload.get("status") or {}).get("collections") or []
        if self._collection in existing:
            logger.info("astra_collection_exists", collection=self._collection)
            return

        await self._command(
            {
                "createCollection": {
                    "name": self._collection,
                    "options": {"vector": {"dimension": self._dimension, "metric": "cosine"}},
                }
            },
            collection_level=False,
        )
        logger.info(
            "astra_collection_created",
            collection=self._collection,
            dimension=self._dimension,
        )

    async def insert(self, drafts: list[DocumentDraft]) -> InsertResult:
        accepted, failures = partition_drafts(drafts, self._dimension)
        if failures:
            logger.warning(
                "astra_insert_validation_failures",
                rejected=len(failures),
                submitted=len(drafts),
            )
        if not accepted:
            return InsertResult(inserted=[], failures=failures)

        start = time.monotonic()
        inserted: list[Document] = []
        chunk_error: DocumentStoreError | None = None
        for offset in range(0, len(accepted), _INSERT_CHUNK):
            chunk = accepted[offset : offset + _INSERT_CHUNK]
            records = [self._document_to_record(doc) for _, doc in chunk]
            try:
                payload = await self._command(
                    {"insertMany": {"documents": records, "options": {"ordered": False}}}
                )
            except DocumentStoreError as exc:
                # Earlier chunks are already stored; report this one per document.
                chunk_error = exc
                logger.warning("astra_insert_chunk_failed", offset=offset, size=len(chunk), error=str(exc))
                failures.extend(
                    InsertFailure(index=index, reason=exc.message, write_failed=True) for index, _ in chunk
                )
                continue
            inserted_ids = set((payload.get("status") or {}).get("insertedIds") or [])
            for (index, doc), record in zip(chunk, records):
                if record["_id"] in inserted_ids:
                    inserted.append(doc.model_copy(update={"id": record["_id"]}))
                else:
                    failures.append(
                        InsertFailure(index=index, reason="not acknowledged by Astra", write_failed=True)
                    )

        if chunk_error is not None and not inserted:
            raise chunk_error

        logger.info(
            "astra_insert",
            inserted=len(inserted),
            rejected=len(failures),
            duration_ms=round((time.monotonic() - start) * 1000),
        )
        return InsertResult(inserted=inserted, failures=sorted(failures, key=lambda f: f.index))

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        start = time.monotonic()
        payload = await self._command(
            {
                "find": {
                    "filter": query.filters.as_dict(),
                    "sort": {"$vector": query.embedding},
                    "projection": {"*": 1},
                    "options": {"limit": query.limit},
                }
            }
        )
        records = (payload.get("data") or {}).get("documents") or []

        results: list[SearchResult] = []
        for record in records:
            similarity = cosine_similarity(query.embedding, record.get("$vector") or [])
            if similarity < query.threshold:
                continue
            document = self._record_to_document(record)
            if document is not None:
                results.append(SearchResult(document=document, similarity=similarity))

        results.sort(key=lambda r: r.similarity, reverse=True)
        results = results[: query.limit]
        logger.info(
            "astra_search",
            candidates=len(records),
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
        needle = text.strip().lower()
        if not needle:
            return []
        limit = max(1, limit)

        matches: list[Document] = []
        async for page in self._find_pages((filters or SearchFilters()).as_dict(), {"$vector": 0}):
            for record in page:
                haystacks = (record.get("text"), record.get("driver"), record.get("team"))
                if any(isinstance(h, str) and needle in h.lower() for h in haystacks):
                    document = self._record_to_document(record)
                    if document is not None:
                        matches.append(document)
                        if len(matches) >= limit:
                            break
            if len(matches) >= limit:
                break

        logger.info("astra_text_search", term=needle, results=len(matches))
        return matches

    async def get_by_filters(
        self,
        filters: SearchFilters,
        limit: int | None = None,
    ) -> list[Document]:
        payload = await self._command(
            {
                "find": {
                    "filter": filters.as_dict(),
                    "sort": {"created_at": -1},
                    "projection": {"$vector": 0},
                    "options": {"limit": lookup_limit(limit)},
                }
            }
        )
        return self._records_to_documents((payload.get("data") or {}).get("documents") or [])

    async def get_statistics(self) -> StoreStatistics:
        by_category: Counter[str] = Counter()
        by_season: Counter[str] = Counter()
        sources: set[str] = set()
        teams: set[str] = set()
        drivers: set[str] = set()
        total = 0

        async for page in self._find_pages({}, _STATS_PROJECTION):
            for record in page:
                total += 1
                if record.get("category"):
                    by_category[record["category"]] += 1
                if record.get("season"):
                    by_season[record["season"]] += 1
                if record.get("source"):
                    sources.add(record["source"])
                if record.get("team"):
                    teams.add(record["team"])
                if record.get("driver"):
                    drivers.add(record["driver"])

        return StoreStatistics(
            total_documents=total,
            categories=sorted(by_category),
            seasons=sorted(by_season),
            sources=sorted(sources),
            teams=sorted(teams),
            drivers=sorted(drivers),
            documents_by_category=dict(sorted(by_category.items())),
            documents_by_season=dict(sorted(by_season.items())),
        )

    async def clear(self) -> None:
        deleted: int | str = 0
        while True:
            payload = await self._command({"deleteMany": {"filter": {}}})
            status = payload.get("status") or {}
            count = int(status.get("deletedCount") or 0)
            # -1 means the whole collection was truncated without a count.
            if count < 0:
                deleted = "all"
            elif isinstance(deleted, int):
                deleted += count
            if not status.get("moreData"):
                break
        logger.info("astra_cleared", collection=self._collection, deleted=deleted)

    async def health_check(self) -> HealthStatus:
        if not self.is_configured():
            return HealthStatus(
                status="unhealthy",
                backend=self.get_provider_name(),
                error="ASTRA_DB_APPLICATION_TOKEN or ASTRA_DB_API_ENDPOINT not set",
            )
        try:
            payload = await self._command({"findCollections": {}}, collection_level=False)
        except DocumentStoreError as exc:
            return HealthStatus(
                status="unhealthy",
                backend=self.get_provider_name(),
                configured=True,
                error=str(exc),
            )

        existing = (payload.get("status") or {}).get("collections") or []
        if self._collection not in existing:
            return HealthStatus(
                status="unhealthy",
                backend=self.get_provider_name(),
                configured=True,
                connection_working=True,
                error=f"Collection {self._collection!r} does not exist",
            )

        try:
            count_payload = await self._command({"countDocuments": {"filter": {}}})
        except DocumentStoreError as exc:
            return HealthStatus(
                status="unhealthy",
                backend=self.get_provider_name(),
                configured=True,
                connection_working=True,
                tables_exist=exc.code != _COLLECTION_MISSING,
                error=str(exc),
            )
        return HealthStatus(
            status="healthy",
            backend=self.get_provider_name(),
            configured=True,
            connection_working=True,
            tables_exist=True,
            documents_count=int((count_payload.get("status") or {}).get("count") or 0),
        )

    def get_provider_name(self) -> str:
        return "astra"

    def is_configured(self) -> bool:
        return bool(self._token and self._endpoint)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
