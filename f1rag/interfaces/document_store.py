"""Abstract base class for document stores.

Two very different backends sit behind this contract: a relational store
that ranks vectors server side (Supabase / pgvector) and a schemaless
document store with a vector-sort primitive (Astra DB).  Callers never
learn which one they are talking to.

Every implementation shares the same draft validation
(:mod:`f1rag.providers.document_store.validation`) so the document model's
invariants hold regardless of backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from f1rag.models.document import (
    Document,
    DocumentDraft,
    HealthStatus,
    InsertResult,
    SearchFilters,
    SearchQuery,
    SearchResult,
    StoreStatistics,
)


# Concrete implementations: SupabaseDocumentStore, AstraDocumentStore
# Located in: f1rag/providers/document_store/
class IDocumentStore(ABC):
    """Contract for persisting and querying F1 documents."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create the table / collection and indexes if absent.

        Idempotent: running it against an initialised backend is a no-op.

        Raises
        ------
        f1rag.utils.errors.ConfigurationError
            If the schema cannot be created and does not already exist.
        f1rag.utils.errors.DocumentStoreError
            On transport failure.
        """

    @abstractmethod
    async def insert(self, drafts: list[DocumentDraft]) -> InsertResult:
        """Validate and store drafts.

        Every draft is validated before anything is sent.  Invalid drafts
        are reported as failures with their index in *drafts*; the valid
        remainder is written in one backend call.

        Raises
        ------
        f1rag.utils.errors.DocumentStoreError
            If the backend write itself fails.  The whole valid subset is
            then considered not inserted.
        """

    @abstractmethod
    async def search(self, query: SearchQuery) -> list[SearchResult]:
        """Vector similarity search.

        Results are in descending similarity, contain nothing below
        ``query.threshold`` and at most ``query.limit`` entries.
        """

    @abstractmethod
    async def text_search(
        self,
        text: str,
        filters: SearchFilters | None = None,
        limit: int = 10,
    ) -> list[Document]:
        """Case-insensitive substring match over text, driver and team."""

    @abstractmethod
    async def get_by_filters(
        self,
        filters: SearchFilters,
        limit: int | None = None,
    ) -> list[Document]:
        """Equality lookup; 50 documents by default, clamped to 1..100."""

    @abstractmethod
    async def get_statistics(self) -> StoreStatistics:
        """Aggregate counts and distinct values across the corpus."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete every document."""

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Probe the backend.  Never raises; failures are reported in the status."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return ``"supabase"`` or ``"astra"``."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Return ``True`` if the required credentials are present."""

    async def close(self) -> None:
        """Release network resources.  Default: nothing to release."""
        return None
