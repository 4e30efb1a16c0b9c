"""Embedding request and batch-result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingPurpose(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Whether a text is being embedded for storage or as a search query.

    Asymmetric models (Cohere) embed the two differently.
    """

    STORE = "store"
    QUERY = "query"


class EmbeddingFailure(BaseModel):
    """One text in a batch that could not be embedded."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, description="Position of the text in the batch input.")
    message: str = Field(description="Error message from the last endpoint tried.")


class BatchEmbeddingResult(BaseModel):
    """Embeddings for the texts that succeeded, keyed by input index."""

    model_config = ConfigDict(frozen=True)

    embeddings: dict[int, list[float]] = Field(default_factory=dict)
    errors: list[EmbeddingFailure] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.embeddings)

    @property
    def failure_count(self) -> int:
        return len(self.errors)
