"""f1rag domain models, re-exported for ``from f1rag.models import ...``."""

from __future__ import annotations

from f1rag.models.answer import AnswerResult, AnswerSource
from f1rag.models.document import (
    MIN_TEXT_LENGTH,
    Category,
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
from f1rag.models.embedding import BatchEmbeddingResult, EmbeddingFailure, EmbeddingPurpose
from f1rag.models.ingestion import (
    FileReport,
    IngestionOptions,
    IngestionReport,
    SourceFileConfig,
)

__all__ = [
    "MIN_TEXT_LENGTH",
    "AnswerResult",
    "AnswerSource",
    "BatchEmbeddingResult",
    "Category",
    "Document",
    "DocumentDraft",
    "EmbeddingFailure",
    "EmbeddingPurpose",
    "FileReport",
    "HealthStatus",
    "IngestionOptions",
    "IngestionReport",
    "InsertFailure",
    "InsertResult",
    "PositionOutcome",
    "SearchFilters",
    "SearchQuery",
    "SearchResult",
    "SourceFileConfig",
    "StoreStatistics",
]
