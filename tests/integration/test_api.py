"""Integration tests for the FastAPI endpoints using TestClient.

Real RetrievalService and AnswerService instances run behind the API;
the embedding endpoint, chat provider and document store are mocks
injected through ``create_app(components=...)``.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from f1rag.main import create_app
from f1rag.models.document import HealthStatus, SearchResult, StoreStatistics
from f1rag.services.answer_service import NO_INFORMATION_ANSWER, AnswerService
from f1rag.services.embedding_generator import EmbeddingGenerator
from f1rag.services.retrieval_service import RetrievalService
from f1rag.utils.errors import ConfigurationError, RateLimitError


@pytest.fixture
def components(
    make_embedding_provider: Callable[..., MagicMock],
    mock_llm_provider: MagicMock,
    mock_document_store: MagicMock,
) -> dict[str, Any]:
    embedder = EmbeddingGenerator([make_embedding_provider("bedrock-us-east-1")], dimension=8)
    retrieval = RetrievalService(embedder, mock_document_store, default_threshold=0.3)
    return {
        "document_store": mock_document_store,
        "embedder": embedder,
        "retrieval_service": retrieval,
        "answer_service": AnswerService(retrieval, [mock_llm_provider]),
        "embedding_provider_names": embedder.get_provider_names(),
        "llm_provider_names": [mock_llm_provider.get_provider_name()],
    }


@pytest.fixture
def client(components: dict[str, Any]) -> Iterator[TestClient]:
    with TestClient(create_app(components=components)) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# /chat
# ---------------------------------------------------------------------------


class TestChat:
    def test_empty_message_is_400(self, client: TestClient, mock_llm_provider: MagicMock) -> None:
        response = client.post("/api/v1/chat", json={"message": "   "})

        assert response.status_code == 400
        assert response.json()["detail"] == "Message is required"
        mock_llm_provider.complete.assert_not_awaited()

    def test_missing_message_is_400(self, client: TestClient) -> None:
        assert client.post("/api/v1/chat", json={}).status_code == 400

    def test_answer_with_metadata(
        self,
        client: TestClient,
        mock_document_store: MagicMock,
        sample_results: list[SearchResult],
    ) -> None:
        mock_document_store.search.return_value = sample_results

        response = client.post("/api/v1/chat", json={"message": "Who won the 2024 title?"})

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "Max Verstappen won the 2024 title."
        assert body["provider"] == "mock-llm"
        assert body["used_fallback"] is False
        assert body["metadata"] == {
            "sources": ["2024/drivers.json", "2024/teams.json"],
            "categories": ["drivers", "teams"],
            "seasons": ["2024"],
            "documents_used": 2,
        }

    def test_filters_reach_the_store(
        self,
        client: TestClient,
        mock_document_store: MagicMock,
        sample_results: list[SearchResult],
    ) -> None:
        mock_document_store.search.return_value = sample_results

        client.post(
            "/api/v1/chat",
            json={"message": "Red Bull", "filters": {"season": "2024", "category": "drivers"}, "limit": 3},
        )

        query = mock_document_store.search.await_args.args[0]
        assert query.filters.season == "2024"
        assert query.filters.category == "drivers"
        assert query.limit == 3

    def test_invalid_filters_are_422(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/chat", json={"message": "x", "filters": {"category": "gossip"}}
        )
        assert response.status_code == 422

    def test_no_context_answer(self, client: TestClient, mock_llm_provider: MagicMock) -> None:
        response = client.post("/api/v1/chat", json={"message": "Who won in 1950?"})

        assert response.status_code == 200
        assert response.json()["answer"] == NO_INFORMATION_ANSWER
        assert response.json()["metadata"]["documents_used"] == 0
        mock_llm_provider.complete.assert_not_awaited()


# ---------------------------------------------------------------------------
# /search
# ---------------------------------------------------------------------------


class TestSearch:
    def test_hits_are_ranked_without_vectors(
        self,
        client: TestClient,
        mock_document_store: MagicMock,
        sample_results: list[SearchResult],
    ) -> None:
        mock_document_store.search.return_value = sample_results

        response = client.post("/api/v1/search", json={"query": "McLaren", "threshold": 0.7})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert [hit["similarity"] for hit in body["results"]] == [0.91, 0.74]
        assert "embedding" not in body["results"][0]
        assert body["results"][0]["category"] == "drivers"
        assert mock_document_store.search.await_args.args[0].threshold == 0.7

    def test_lexical_fallback_scores(
        self,
        client: TestClient,
        mock_document_store: MagicMock,
        make_document: Callable[..., Any],
    ) -> None:
        mock_document_store.text_search.return_value = [make_document()]

        body = client.post("/api/v1/search", json={"query": "Verstappen"}).json()

        assert [hit["similarity"] for hit in body["results"]] == [0.5]

    def test_empty_query_is_422(self, client: TestClient) -> None:
        assert client.post("/api/v1/search", json={"query": ""}).status_code == 422


# ---------------------------------------------------------------------------
# /stats and /health
# ---------------------------------------------------------------------------


class TestStatsAndHealth:
    def test_stats(self, client: TestClient, mock_document_store: MagicMock) -> None:
        mock_document_store.get_statistics.return_value = StoreStatistics(
            total_documents=3,
            categories=["drivers", "teams"],
            seasons=["2024"],
            documents_by_category={"drivers": 2, "teams": 1},
            documents_by_season={"2024": 3},
        )

        body = client.get("/api/v1/stats").json()

        assert body["total_documents"] == 3
        assert sum(body["documents_by_category"].values()) == body["total_documents"]

    def test_health_ok(self, client: TestClient) -> None:
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["store"]["documents_count"] == 3
        assert body["providers"] == {"embedding": ["bedrock-us-east-1"], "llm": ["mock-llm"]}

    def test_health_unhealthy_is_503(self, client: TestClient, mock_document_store: MagicMock) -> None:
        mock_document_store.health_check.return_value = HealthStatus(
            status="unhealthy",
            backend="mock-store",
            configured=True,
            connection_working=False,
            error="connection refused",
        )

        response = client.get("/api/v1/health")

        assert response.status_code == 503
        assert response.json()["store"]["error"] == "connection refused"

    def test_application_errors_become_json(
        self, client: TestClient, mock_document_store: MagicMock
    ) -> None:
        mock_document_store.get_statistics.side_effect = ConfigurationError(
            message="table missing", provider_name="supabase"
        )

        response = client.get("/api/v1/stats")

        assert response.status_code == 503
        assert response.json() == {"error": "ConfigurationError", "detail": "table missing"}

    def test_rate_limits_are_429(self, client: TestClient, mock_document_store: MagicMock) -> None:
        mock_document_store.get_statistics.side_effect = RateLimitError(
            message="slow down", provider_name="astra"
        )

        assert client.get("/api/v1/stats").status_code == 429

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        generated = client.get("/api/v1/health")
        supplied = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})

        assert len(generated.headers["X-Request-ID"]) == 12
        assert supplied.headers["X-Request-ID"] == "abc123"
