"""Abstract contracts for every external collaborator.

Services depend only on these interfaces; the concrete Bedrock, OpenAI,
Supabase and Astra adapters live in ``f1rag/providers/`` and are wired
together in :mod:`f1rag.main`.  Tests inject mocks built with
``MagicMock(spec=...)`` against the same classes.
"""

from __future__ import annotations

from f1rag.interfaces.document_store import IDocumentStore
from f1rag.interfaces.embedding_provider import IEmbeddingProvider
from f1rag.interfaces.llm_provider import ILLMProvider

__all__ = ["IDocumentStore", "IEmbeddingProvider", "ILLMProvider"]
