"""Abstract base class for text-embedding providers.

One provider instance stands for one endpoint (a Bedrock region, or an
OpenAI-compatible base URL).  The
:class:`~f1rag.services.embedding_generator.EmbeddingGenerator` holds an
ordered list of them and fails over between them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from f1rag.models.embedding import EmbeddingPurpose


# Concrete implementations:
#   BedrockEmbeddingProvider  -- Cohere / Titan on AWS Bedrock, one per region
#   OpenAIEmbeddingProvider   -- any OpenAI-compatible embeddings API
# Located in: f1rag/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for embedding endpoints used by the ingestion and retrieval paths."""

    @abstractmethod
    async def embed(
        self,
        texts: list[str],
        purpose: EmbeddingPurpose = EmbeddingPurpose.STORE,
    ) -> list[list[float]]:
        """Embed a batch of texts.

        Parameters
        ----------
        texts:
            Texts to embed.  Implementations split the batch if the
            underlying API has a per-call limit.
        purpose:
            ``STORE`` for documents, ``QUERY`` for search queries.  Models
            that embed both the same way ignore it.

        Returns
        -------
        list[list[float]]
            One vector per input text, in input order.

        Raises
        ------
        f1rag.utils.errors.EmbeddingError
            If the call fails.
        f1rag.utils.errors.RateLimitError
            If the endpoint throttled the request.
        """

    @abstractmethod
    async def embed_single(
        self,
        text: str,
        purpose: EmbeddingPurpose = EmbeddingPurpose.STORE,
    ) -> list[float]:
        """Embed one text.  Same errors as :meth:`embed`."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the vector length this provider is configured to produce."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return an identifier such as ``"bedrock-us-east-1"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials/configuration are present."""
