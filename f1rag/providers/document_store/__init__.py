"""Document store adapters and the shared draft validation."""

from __future__ import annotations

from f1rag.providers.document_store.astra_store import AstraDocumentStore
from f1rag.providers.document_store.supabase_store import SupabaseDocumentStore
from f1rag.providers.document_store.validation import (
    collect_violations,
    lookup_limit,
    partition_drafts,
    validate_draft,
)

__all__ = [
    "AstraDocumentStore",
    "SupabaseDocumentStore",
    "collect_violations",
    "lookup_limit",
    "partition_drafts",
    "validate_draft",
]
