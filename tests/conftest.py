"""Shared pytest fixtures for the f1rag test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from f1rag.interfaces.document_store import IDocumentStore
from f1rag.interfaces.embedding_provider import IEmbeddingProvider
from f1rag.interfaces.llm_provider import ILLMProvider
from f1rag.models.document import (
    Category,
    Document,
    HealthStatus,
    InsertResult,
    SearchResult,
    StoreStatistics,
)

# Small dimension keeps fixtures readable; the stores and the generator only
# care that every vector has the configured length.
TEST_DIMENSION = 8


def unit_vector(index: int, dimension: int = TEST_DIMENSION) -> list[float]:
    """One-hot vector; two different indices are orthogonal."""
    vector = [0.0] * dimension
    vector[index % dimension] = 1.0
    return vector


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@pytest.fixture
def make_document() -> Callable[..., Document]:
    """Factory for valid :class:`Document` instances with overrides."""

    def _make(**overrides: Any) -> Document:
        fields: dict[str, Any] = {
            "id": "doc-1",
            "text": "Max Verstappen is a Formula 1 driver from Netherlands.",
            "embedding": unit_vector(0),
            "source": "2024/drivers.json",
            "category": Category.DRIVERS,
            "season": "2024",
            "driver": "Max Verstappen",
            "team": "Red Bull Racing",
            "points": 437.0,
        }
        fields.update(overrides)
        return Document(**fields)

    return _make


@pytest.fixture
def sample_results(make_document: Callable[..., Document]) -> list[SearchResult]:
    return [
        SearchResult(document=make_document(), similarity=0.91),
        SearchResult(
            document=make_document(
                id="doc-2",
                text="McLaren (McLaren Formula 1 Team) is a Formula 1 team based in Woking.",
                source="2024/teams.json",
                category=Category.TEAMS,
                driver=None,
                team="McLaren",
                points=None,
            ),
            similarity=0.74,
        ),
    ]


# ---------------------------------------------------------------------------
# Mock provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_embedding_provider() -> Callable[..., MagicMock]:
    """Factory for mock embedding endpoints.

    ``vector`` is returned by every call unless ``side_effect`` is given.
    """

    def _make(
        name: str = "mock-embedding",
        vector: list[float] | None = None,
        side_effect: Any = None,
    ) -> MagicMock:
        mock = MagicMock(spec=IEmbeddingProvider)
        mock.get_provider_name.return_value = name
        mock.is_available.return_value = True
        mock.get_dimension.return_value = TEST_DIMENSION
        if side_effect is not None:
            mock.embed_single = AsyncMock(side_effect=side_effect)
        else:
            mock.embed_single = AsyncMock(return_value=vector or unit_vector(0))
        return mock

    return _make


@pytest.fixture
def mock_llm_provider() -> MagicMock:
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.complete = AsyncMock(return_value="Max Verstappen won the 2024 title.")
    return mock


@pytest.fixture
def mock_document_store() -> MagicMock:
    """Mock IDocumentStore with empty, successful defaults."""
    mock = MagicMock(spec=IDocumentStore)
    mock.get_provider_name.return_value = "mock-store"
    mock.is_configured.return_value = True
    mock.initialize = AsyncMock(return_value=None)
    mock.insert = AsyncMock(return_value=InsertResult())
    mock.search = AsyncMock(return_value=[])
    mock.text_search = AsyncMock(return_value=[])
    mock.get_by_filters = AsyncMock(return_value=[])
    mock.get_statistics = AsyncMock(return_value=StoreStatistics())
    mock.clear = AsyncMock(return_value=None)
    mock.close = AsyncMock(return_value=None)
    mock.health_check = AsyncMock(
        return_value=HealthStatus(
            status="healthy",
            backend="mock-store",
            configured=True,
            connection_working=True,
            tables_exist=True,
            documents_count=3,
        )
    )
    return mock


# ---------------------------------------------------------------------------
# Data files
# ---------------------------------------------------------------------------


@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write *payload* as JSON under ``tmp_path`` and return the path."""

    def _write(relative: str, payload: Any) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
