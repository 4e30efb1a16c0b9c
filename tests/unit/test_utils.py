"""Unit tests for the failover policy, staggered gather, errors and logging."""

from __future__ import annotations

import asyncio
import time

import pytest
import structlog

from f1rag.utils.concurrency import staggered_gather
from f1rag.utils.errors import (
    DocumentStoreError,
    DocumentValidationError,
    EmbeddingError,
    F1RagError,
    RAGError,
)
from f1rag.utils.failover import try_next
from f1rag.utils.logging import bind_run_context, clear_run_context, configure_logging


class TestTryNext:
    def test_advances_to_next_endpoint(self) -> None:
        assert try_next(3, 0, 1) == 1
        assert try_next(3, 1, 2) == 2

    def test_wraps_around(self) -> None:
        assert try_next(3, 2, 1) == 0

    def test_exhausted_after_every_endpoint_tried(self) -> None:
        assert try_next(3, 1, 3) is None

    def test_single_endpoint_never_retries(self) -> None:
        assert try_next(1, 0, 1) is None

    def test_empty_list(self) -> None:
        assert try_next(0, 0, 0) is None

    def test_visits_every_endpoint_exactly_once(self) -> None:
        visited = [2]
        current, attempts = 2, 1
        while (nxt := try_next(4, current, attempts)) is not None:
            visited.append(nxt)
            current, attempts = nxt, attempts + 1
        assert visited == [2, 3, 0, 1]


class TestStaggeredGather:
    @pytest.mark.asyncio
    async def test_results_in_input_order_with_exceptions(self) -> None:
        async def ok(value: int) -> int:
            await asyncio.sleep(0)
            return value

        async def boom() -> int:
            raise ValueError("bad")

        results = await staggered_gather([lambda: ok(1), boom, lambda: ok(3)], 0.0)

        assert results[0] == 1
        assert isinstance(results[1], ValueError)
        assert results[2] == 3

    @pytest.mark.asyncio
    async def test_later_items_start_later(self) -> None:
        starts: list[float] = []

        async def record() -> None:
            starts.append(time.monotonic())

        await staggered_gather([record, record, record], 0.02)

        assert starts[1] - starts[0] >= 0.015
        assert starts[2] - starts[0] >= 0.035

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        assert await staggered_gather([], 0.1) == []


class TestErrors:
    def test_str_includes_provider(self) -> None:
        err = EmbeddingError(message="timeout", provider_name="bedrock-us-east-1")
        assert str(err) == "[bedrock-us-east-1] timeout"
        assert err.message == "timeout"

    def test_str_without_provider(self) -> None:
        assert str(F1RagError(message="plain")) == "plain"

    def test_hierarchy(self) -> None:
        assert issubclass(EmbeddingError, RAGError)
        assert issubclass(DocumentStoreError, RAGError)
        assert issubclass(RAGError, F1RagError)

    def test_store_error_code(self) -> None:
        err = DocumentStoreError(message="missing", provider_name="supabase", code="42P01")
        assert err.code == "42P01"

    def test_validation_reasons_are_copied(self) -> None:
        reasons = ["a", "b"]
        err = DocumentValidationError(message="a; b", reasons=reasons)
        reasons.append("c")
        assert err.reasons == ["a", "b"]


class TestLogging:
    def test_run_context_is_bound_and_cleared(self) -> None:
        configure_logging(log_level="DEBUG")
        bind_run_context(run_id="abc123")
        assert structlog.contextvars.get_contextvars()["run_id"] == "abc123"
        clear_run_context("run_id")
        assert "run_id" not in structlog.contextvars.get_contextvars()
