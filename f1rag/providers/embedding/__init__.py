"""Embedding provider adapters."""

from __future__ import annotations

from f1rag.providers.embedding.bedrock_embedding_provider import BedrockEmbeddingProvider
from f1rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["BedrockEmbeddingProvider", "OpenAIEmbeddingProvider"]
