"""Embedding generation with endpoint failover and rate-limited batching.

The generator owns an ordered list of embedding endpoints (normally one
Bedrock provider per region) and a cursor pointing at the endpoint that
last worked.  A call starts at the cursor; when it fails, the stateless
:func:`~f1rag.utils.failover.try_next` policy picks the next endpoint and
the same call is retried there, until every endpoint has been tried once.
The cursor is only moved on that failover path, so a healthy endpoint
keeps serving every call.

Batches are embedded in chunks: the calls of one chunk run concurrently
with staggered start times, and a fixed delay separates chunks.  Failures
are per item; one bad text never sinks the batch.
"""

from __future__ import annotations

import asyncio
import time
from numbers import Real
from typing import Any

import structlog

from f1rag.interfaces.embedding_provider import IEmbeddingProvider
from f1rag.models.embedding import BatchEmbeddingResult, EmbeddingFailure, EmbeddingPurpose
from f1rag.utils.concurrency import staggered_gather
from f1rag.utils.errors import ConfigurationError, EmbeddingError, F1RagError
from f1rag.utils.failover import try_next

logger = structlog.get_logger(logger_name=__name__)


class EmbeddingGenerator:
    """Embed single texts and batches across an ordered list of endpoints.

    Parameters
    ----------
    providers:
        Endpoints in preference order.  Must not be empty.
    dimension:
        Required vector length; any other length counts as a failure of
        the endpoint that returned it.
    stagger_delay:
        Seconds multiplied by an item's position within a chunk before its
        call starts.
    batch_delay:
        Seconds to wait between chunks.
    """

    def __init__(
        self,
        providers: list[IEmbeddingProvider],
        dimension: int,
        stagger_delay: float = 0.1,
        batch_delay: float = 1.0,
    ) -> None:
        if not providers:
            raise ConfigurationError(message="EmbeddingGenerator needs at least one provider")
        self._providers = list(providers)
        self._dimension = dimension
        self._stagger_delay = stagger_delay
        self._batch_delay = batch_delay
        self._cursor = 0

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def current_provider(self) -> IEmbeddingProvider:
        return self._providers[self._cursor]

    def get_provider_names(self) -> list[str]:
        return [p.get_provider_name() for p in self._providers]

    # ------------------------------------------------------------------
    # Single text
    # ------------------------------------------------------------------

    async def embed(
        self,
        text: str,
        purpose: EmbeddingPurpose = EmbeddingPurpose.STORE,
    ) -> list[float]:
        """Embed one text, failing over across endpoints.

        Raises
        ------
        EmbeddingError
            When every endpoint failed or returned a malformed vector.
        """
        count = len(self._providers)
        current = self._cursor
        attempts = 0
        last_error: F1RagError | None = None

        while True:
            provider = self._providers[current]
            attempts += 1
            try:
                vector = await provider.embed_single(text, purpose)
                return self._validated(vector, provider)
            except F1RagError as exc:
                last_error = exc
                next_index = try_next(count, current, attempts)
                logger.warning(
                    "embedding_endpoint_failed",
                    provider=provider.get_provider_name(),
                    attempt=attempts,
                    endpoints=count,
                    error=str(exc),
                )
                if next_index is None:
                    break
                current = next_index
                self._cursor = current

        raise EmbeddingError(
            message=f"All {count} embedding endpoints failed; last error: {last_error}",
        )

    def _validated(self, vector: Any, provider: IEmbeddingProvider) -> list[float]:
        if not isinstance(vector, list) or not vector:
            raise EmbeddingError(
                message="Endpoint returned an empty or non-list embedding",
                provider_name=provider.get_provider_name(),
            )
        if any(isinstance(v, bool) or not isinstance(v, Real) for v in vector):
            raise EmbeddingError(
                message="Endpoint returned a non-numeric embedding",
                provider_name=provider.get_provider_name(),
            )
        if len(vector) != self._dimension:
            raise EmbeddingError(
                message=f"Expected {self._dimension} dimensions, got {len(vector)}",
                provider_name=provider.get_provider_name(),
            )
        return [float(v) for v in vector]

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def embed_batch(
        self,
        texts: list[str],
        batch_size: int = 5,
        purpose: EmbeddingPurpose = EmbeddingPurpose.STORE,
        stagger_delay: float | None = None,
        batch_delay: float | None = None,
    ) -> BatchEmbeddingResult:
        """Embed many texts in rate-limited chunks.

        Returns embeddings keyed by input index and one
        :class:`EmbeddingFailure` per text that could not be embedded.
        *stagger_delay* and *batch_delay* override the generator defaults
        for this call.
        """
        batch_size = max(1, batch_size)
        stagger = self._stagger_delay if stagger_delay is None else stagger_delay
        pause = self._batch_delay if batch_delay is None else batch_delay
        embeddings: dict[int, list[float]] = {}
        errors: list[EmbeddingFailure] = []
        start = time.monotonic()

        for chunk_start in range(0, len(texts), batch_size):
            if chunk_start:
                await asyncio.sleep(pause)

            chunk = texts[chunk_start : chunk_start + batch_size]
            factories = [
                (lambda t=text: self.embed(t, purpose))
                for text in chunk
            ]
            results = await staggered_gather(factories, stagger)

            for offset, result in enumerate(results):
                index = chunk_start + offset
                if isinstance(result, Exception):
                    errors.append(EmbeddingFailure(index=index, message=str(result)))
                elif isinstance(result, BaseException):
                    raise result
                else:
                    embeddings[index] = result

            logger.debug(
                "embedding_chunk_complete",
                chunk_start=chunk_start,
                chunk_size=len(chunk),
                total=len(texts),
            )

        logger.info(
            "embedding_batch_complete",
            total=len(texts),
            succeeded=len(embeddings),
            failed=len(errors),
            duration_ms=round((time.monotonic() - start) * 1000),
        )
        return BatchEmbeddingResult(embeddings=embeddings, errors=errors)
