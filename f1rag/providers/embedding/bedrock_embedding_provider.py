"""AWS Bedrock embedding provider adapter.

One instance wraps one region's ``bedrock-runtime`` client.  The embedding
generator holds one instance per configured region and fails over between
them, so this class makes exactly one attempt per call and reports failure
by raising.

Two model families are supported, chosen by model identifier:

* ``cohere.*`` -- batched, asymmetric (``search_document`` vs
  ``search_query``), up to 96 texts per call.
* ``amazon.titan-embed*`` -- one text per call, output dimension and
  normalisation requested explicitly.

boto3 is synchronous, so every ``invoke_model`` call runs in a worker
thread via :func:`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from f1rag.config.settings import Settings
from f1rag.interfaces.embedding_provider import IEmbeddingProvider
from f1rag.models.embedding import EmbeddingPurpose
from f1rag.utils.errors import ConfigurationError, EmbeddingError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_COHERE_BATCH_LIMIT = 96

_THROTTLING_CODES = {"ThrottlingException", "TooManyRequestsException", "ServiceQuotaExceededException"}

_COHERE_INPUT_TYPES = {
    EmbeddingPurpose.STORE: "search_document",
    EmbeddingPurpose.QUERY: "search_query",
}


def build_bedrock_client(settings: Settings, region: str) -> Any:
    """Create a ``bedrock-runtime`` client for *region*.

    Explicit access keys are used when configured; otherwise boto3's
    default credential chain applies (environment, profile, instance role).
    """
    session_kwargs: dict[str, str] = {"region_name": region}
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        session_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        session_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
    session = boto3.Session(**session_kwargs)
    return session.client("bedrock-runtime")


class BedrockEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by one Bedrock region."""

    def __init__(
        self,
        settings: Settings,
        region: str,
        client: Any | None = None,
    ) -> None:
        self._model = settings.bedrock_embedding_model
        self._region = region
        self._dimension = settings.embedding_dimension
        if self._model.startswith("cohere."):
            self._family = "cohere"
        elif self._model.startswith("amazon.titan-embed"):
            self._family = "titan"
        else:
            raise ConfigurationError(
                message=f"Unsupported Bedrock embedding model {self._model!r}",
                provider_name=f"bedrock-{region}",
            )
        self._client = client if client is not None else build_bedrock_client(settings, region)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(
        self,
        texts: list[str],
        purpose: EmbeddingPurpose = EmbeddingPurpose.STORE,
    ) -> list[list[float]]:
        if not texts:
            return []

        start = time.monotonic()
        vectors: list[list[float]] = []
        if self._family == "cohere":
            for offset in range(0, len(texts), _COHERE_BATCH_LIMIT):
                batch = texts[offset : offset + _COHERE_BATCH_LIMIT]
                body = {
                    "texts": batch,
                    "input_type": _COHERE_INPUT_TYPES[purpose],
                    "truncate": "END",
                }
                payload = await self._invoke(body)
                embeddings = payload.get("embeddings")
                if not isinstance(embeddings, list) or len(embeddings) != len(batch):
                    raise EmbeddingError(
                        message=f"Cohere response carried {len(embeddings or [])} "
                        f"embeddings for {len(batch)} texts",
                        provider_name=self.get_provider_name(),
                    )
                vectors.extend(embeddings)
        else:
            for text in texts:
                body = {"inputText": text, "dimensions": self._dimension, "normalize": True}
                payload = await self._invoke(body)
                embedding = payload.get("embedding")
                if not isinstance(embedding, list):
                    raise EmbeddingError(
                        message="Titan response carried no embedding",
                        provider_name=self.get_provider_name(),
                    )
                vectors.append(embedding)

        logger.debug(
            "bedrock_embedding_batch",
            region=self._region,
            model=self._model,
            batch_size=len(texts),
            duration_ms=round((time.monotonic() - start) * 1000),
        )
        return vectors

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
        return f"bedrock-{self._region}"

    def is_available(self) -> bool:
        """boto3 resolves credentials lazily; a constructed client counts as available."""
        return self._client is not None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _invoke(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await asyncio.to_thread(
                self._client.invoke_model,
                modelId=self._model,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
            return json.loads(response["body"].read())
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in _THROTTLING_CODES:
                raise RateLimitError(
                    message=f"Bedrock throttled embedding request: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise EmbeddingError(
                message=f"Bedrock embedding request failed ({code}): {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except (BotoCoreError, ValueError) as exc:
            raise EmbeddingError(
                message=f"Bedrock embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
