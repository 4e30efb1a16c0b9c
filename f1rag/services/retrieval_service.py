"""Query-time retrieval with graceful degradation.

The normal path embeds the query and runs a vector search.  When that path
cannot produce anything (embedding endpoints exhausted, the store's search
call failed, or simply no document cleared the threshold) the service runs
a lexical search with the raw query text instead and scores every hit a
flat 0.5, so callers always get the same result shape.  If even the
lexical search fails the answer is an empty list: :meth:`retrieve` never
raises an application error.
"""

from __future__ import annotations

import time

import structlog

from f1rag.interfaces.document_store import IDocumentStore
from f1rag.models.document import SearchFilters, SearchQuery, SearchResult
from f1rag.models.embedding import EmbeddingPurpose
from f1rag.services.embedding_generator import EmbeddingGenerator
from f1rag.utils.errors import F1RagError

logger = structlog.get_logger(logger_name=__name__)

# Score assigned to lexical-fallback hits.
FALLBACK_SIMILARITY = 0.5

# Exploratory default; stricter callers pass their own threshold.
DEFAULT_THRESHOLD = 0.3

MIN_LIMIT = 1
MAX_LIMIT = 50


def clamp_limit(limit: int | None, default: int = 10) -> int:
    return max(MIN_LIMIT, min(MAX_LIMIT, default if limit is None else limit))


class RetrievalService:
    """Embed-then-search retrieval with a lexical fallback.

    Parameters
    ----------
    embedder:
        Generator used to embed the query (purpose ``QUERY``).
    store:
        Any document store.
    default_threshold:
        Similarity threshold used when the caller passes none.
    default_limit:
        Result limit used when the caller passes none.
    """

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        store: IDocumentStore,
        default_threshold: float = DEFAULT_THRESHOLD,
        default_limit: int = 10,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._default_threshold = default_threshold
        self._default_limit = clamp_limit(default_limit)

    async def retrieve(
        self,
        query_text: str,
        filters: SearchFilters | None = None,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[SearchResult]:
        """Return documents relevant to *query_text*, best first."""
        filters = filters or SearchFilters()
        limit = clamp_limit(limit, self._default_limit)
        threshold = self._default_threshold if threshold is None else min(1.0, max(0.0, threshold))
        start = time.monotonic()

        reason = "no_results"
        try:
            embedding = await self._embedder.embed(query_text, EmbeddingPurpose.QUERY)
            results = await self._store.search(
                SearchQuery(
                    embedding=embedding,
                    threshold=threshold,
                    limit=limit,
                    filters=filters,
                )
            )
            if results:
                logger.info(
                    "retrieval_vector",
                    results=len(results),
                    threshold=threshold,
                    duration_ms=round((time.monotonic() - start) * 1000),
                )
                return results
        except F1RagError as exc:
            reason = "vector_path_failed"
            logger.warning("retrieval_vector_failed", error=str(exc))

        return await self._lexical_fallback(query_text, filters, limit, reason)

    async def _lexical_fallback(
        self,
        query_text: str,
        filters: SearchFilters,
        limit: int,
        reason: str,
    ) -> list[SearchResult]:
        try:
            documents = await self._store.text_search(query_text, filters, limit)
        except F1RagError as exc:
            logger.error("retrieval_fallback_failed", reason=reason, error=str(exc))
            return []

        results = [
            SearchResult(document=doc, similarity=FALLBACK_SIMILARITY)
            for doc in documents[:limit]
        ]
        logger.info("retrieval_fallback", reason=reason, results=len(results))
        return results
