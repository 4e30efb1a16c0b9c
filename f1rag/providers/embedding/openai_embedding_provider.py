"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Works against OpenAI itself or any OpenAI-compatible endpoint configured
through ``OPENAI_BASE_URL``.  The deployment dimension is requested
explicitly from models that support shortened outputs
(``text-embedding-3-*``), so a 1024-dimension store can sit behind them.
"""

from __future__ import annotations

import openai
import structlog

from f1rag.config.settings import Settings
from f1rag.interfaces.embedding_provider import IEmbeddingProvider
from f1rag.models.embedding import EmbeddingPurpose
from f1rag.utils.errors import EmbeddingError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

# Models that accept the ``dimensions`` parameter.
_SHORTENABLE_PREFIXES = ("text-embedding-3",)


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Purpose is ignored: these models embed documents and queries the same way.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._api_key = settings.openai_api_key
        if client is None:
            client_kwargs: dict = {"api_key": self._api_key, "timeout": settings.http_timeout}
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            client = openai.AsyncOpenAI(**client_kwargs)
        self._client = client
        self._model = settings.openai_embedding_model
        self._dimension = settings.embedding_dimension
        self._provider_label = (
            "openai-compatible-embedding" if settings.openai_base_url else "openai-embedding"
        )

    async def embed(
        self,
        texts: list[str],
        purpose: EmbeddingPurpose = EmbeddingPurpose.STORE,
    ) -> list[list[float]]:
        if not texts:
            return []

        extra: dict = {}
        if self._model.startswith(_SHORTENABLE_PREFIXES):
            extra["dimensions"] = self._dimension

        try:
            vectors: list[list[float]] = []
            for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
                batch = texts[start : start + _OPENAI_BATCH_LIMIT]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                    **extra,
                )
                vectors.extend(item.embedding for item in response.data)
                logger.debug(
                    "openai_embedding_batch",
                    model=self._model,
                    provider=self._provider_label,
                    batch_size=len(batch),
                )
            return vectors
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self._provider_label} rate limited: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(
        self,
        text: str,
        purpose: EmbeddingPurpose = EmbeddingPurpose.STORE,
    ) -> list[float]:
        result = await self.embed([text], purpose)
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
