"""Unit tests for SupabaseDocumentStore against a mocked PostgREST."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from f1rag.config.settings import Settings
from f1rag.models.document import (
    Category,
    DocumentDraft,
    PositionOutcome,
    SearchFilters,
    SearchQuery,
)
from f1rag.providers.document_store.supabase_store import SupabaseDocumentStore, load_schema_sql
from f1rag.services.embedding_generator import EmbeddingGenerator
from f1rag.services.retrieval_service import FALLBACK_SIMILARITY, RetrievalService
from f1rag.utils.errors import ConfigurationError, DocumentStoreError

BASE = "https://proj.supabase.co"
DIM = 4


def _settings(**overrides) -> Settings:
    defaults = {
        "supabase_url": BASE,
        "supabase_anon_key": "",
        "supabase_service_role_key": "service-key",
        "supabase_db_url": "",
        "supabase_table": "f1_documents",
        "embedding_dimension": DIM,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _row(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": "3f0c9a52-7f3e-4d2e-9d1b-1b2f6f1f7a10",
        "text": "A. Pilot is a Formula 1 driver who raced for Swift Racing.",
        "embedding": "[0.1,0.2,0.3,0.4]",
        "source": "2024/drivers.json",
        "category": "drivers",
        "season": "2024",
        "track": None,
        "driver": "A. Pilot",
        "team": "Swift Racing",
        "constructor": None,
        "position": None,
        "points": 77,
        "metadata": {},
        "created_at": "2024-05-01T10:00:00+00:00",
    }
    row.update(overrides)
    return row


def _draft(**overrides: Any) -> DocumentDraft:
    fields = {
        "text": "A. Pilot is a Formula 1 driver who raced for Swift Racing.",
        "embedding": [0.1, 0.2, 0.3, 0.4],
        "source": "2024/drivers.json",
        "category": "drivers",
        "season": "2024",
        "driver": "A. Pilot",
        "team": "Swift Racing",
        "points": 77.0,
    }
    fields.update(overrides)
    return DocumentDraft(**fields)


Handler = Callable[[httpx.Request], httpx.Response]


def _store(handler: Handler, **overrides: Any) -> SupabaseDocumentStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SupabaseDocumentStore(_settings(**overrides), client=client)


class TestConstruction:
    def test_rejects_unsafe_table_name(self) -> None:
        with pytest.raises(ConfigurationError):
            SupabaseDocumentStore(_settings(supabase_table="docs; drop table x"))

    def test_schema_sql_is_templated(self) -> None:
        sql = load_schema_sql("f1_documents", 1024)
        assert "vector(1024)" in sql
        assert "__TABLE__" not in sql
        assert "search_f1_documents" in sql


class TestInsert:
    @pytest.mark.asyncio
    async def test_stores_valid_and_reports_short_embedding(self) -> None:
        posted: list[Any] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/rest/v1/f1_documents"
            assert request.headers["Prefer"] == "return=representation"
            assert request.headers["apikey"] == "service-key"
            rows = json.loads(request.content)
            posted.extend(rows)
            return httpx.Response(201, json=[_row()])

        store = _store(handler)
        result = await store.insert([_draft(), _draft(embedding=[0.1, 0.2, 0.3])])

        assert len(posted) == 1
        assert result.inserted_count == 1
        assert len(result.failures) == 1
        assert result.failures[0].index == 1

    @pytest.mark.asyncio
    async def test_all_invalid_makes_no_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        store = _store(handler)
        result = await store.insert([_draft(season="24")])

        assert result.inserted == []
        assert len(result.failures) == 1

    @pytest.mark.asyncio
    async def test_outcome_is_stored_in_metadata(self) -> None:
        posted: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            posted.extend(json.loads(request.content))
            row = _row(metadata={"position_outcome": "DNF"}, position=None)
            return httpx.Response(201, json=[row])

        store = _store(handler)
        result = await store.insert([_draft(position="DNF", category="race_results")])

        assert posted[0]["position"] is None
        assert posted[0]["metadata"]["position_outcome"] == "DNF"
        assert result.inserted[0].position is PositionOutcome.DNF
        assert "position_outcome" not in result.inserted[0].metadata

    @pytest.mark.asyncio
    async def test_http_error_raises_store_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"code": "XX000", "message": "internal"})

        store = _store(handler)
        with pytest.raises(DocumentStoreError) as excinfo:
            await store.insert([_draft()])
        assert excinfo.value.code == "XX000"

    @pytest.mark.asyncio
    async def test_html_reply_raises_store_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        store = _store(handler)
        with pytest.raises(DocumentStoreError, match="insert returned invalid JSON"):
            await store.insert([_draft()])


class TestSearch:
    @pytest.mark.asyncio
    async def test_filters_sorts_and_clamps(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert request.url.path == "/rest/v1/rpc/search_f1_documents"
            assert body["match_threshold"] == 0.7
            assert body["match_count"] == 5
            assert body["season_filter"] == "2024"
            assert body["team_filter"] is None
            return httpx.Response(
                200,
                json=[
                    _row(id="a", similarity=0.95),
                    _row(id="b", similarity=0.5),
                    _row(id="c", similarity=1.2),
                ],
            )

        store = _store(handler)
        results = await store.search(
            SearchQuery(
                embedding=[0.1] * DIM,
                threshold=0.7,
                limit=5,
                filters=SearchFilters(season="2024"),
            )
        )

        assert [r.document.id for r in results] == ["c", "a"]
        assert results[0].similarity == 1.0
        assert results[0].document.embedding == [0.1, 0.2, 0.3, 0.4]

    @pytest.mark.asyncio
    async def test_missing_function_raises_with_code(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"code": "PGRST202", "message": "not found"})

        store = _store(handler)
        with pytest.raises(DocumentStoreError) as excinfo:
            await store.search(SearchQuery(embedding=[0.1] * DIM))
        assert excinfo.value.code == "PGRST202"

    @pytest.mark.asyncio
    async def test_invalid_rows_are_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json=[_row(id="bad", season="24", similarity=0.9), _row(id="ok", similarity=0.8)]
            )

        store = _store(handler)
        results = await store.search(SearchQuery(embedding=[0.1] * DIM, threshold=0.5))
        assert [r.document.id for r in results] == ["ok"]

    @pytest.mark.asyncio
    async def test_html_reply_raises_store_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        store = _store(handler)
        with pytest.raises(DocumentStoreError, match="search returned invalid JSON"):
            await store.search(SearchQuery(embedding=[0.1] * DIM))

    @pytest.mark.asyncio
    async def test_object_reply_raises_store_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"rows": []})

        store = _store(handler)
        with pytest.raises(DocumentStoreError, match="expected list"):
            await store.search(SearchQuery(embedding=[0.1] * DIM))

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=["not a row", _row(id="bad", embedding="[0.1,", similarity=0.9), _row(id="ok", similarity=0.8)],
            )

        store = _store(handler)
        results = await store.search(SearchQuery(embedding=[0.1] * DIM, threshold=0.5))
        assert [r.document.id for r in results] == ["ok"]


class TestLexicalAndLookup:
    @pytest.mark.asyncio
    async def test_text_search_builds_or_expression(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            params = request.url.params
            assert params["or"] == (
                "(text.ilike.*Swift Racing*,driver.ilike.*Swift Racing*,team.ilike.*Swift Racing*)"
            )
            assert params["season"] == "eq.2024"
            assert params["limit"] == "3"
            return httpx.Response(200, json=[_row()])

        store = _store(handler)
        documents = await store.text_search(
            "Swift, Racing", SearchFilters(season="2024"), limit=3
        )

        assert len(documents) == 1
        assert documents[0].category is Category.DRIVERS

    @pytest.mark.asyncio
    async def test_text_search_with_only_reserved_characters(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        store = _store(handler)
        assert await store.text_search("(*)") == []

    @pytest.mark.asyncio
    async def test_get_by_filters_caps_limit(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["limit"] == "100"
            assert request.url.params["order"] == "created_at.desc"
            assert request.url.params["team"] == "eq.McLaren"
            return httpx.Response(200, json=[])

        store = _store(handler)
        assert await store.get_by_filters(SearchFilters(team="McLaren"), limit=500) == []

    @pytest.mark.asyncio
    async def test_get_by_filters_negative_limit_is_raised_to_one(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["limit"] == "1"
            return httpx.Response(200, json=[_row()])

        store = _store(handler)
        assert len(await store.get_by_filters(SearchFilters(), limit=-5)) == 1

    @pytest.mark.asyncio
    async def test_statistics_html_reply_raises_store_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        store = _store(handler)
        with pytest.raises(DocumentStoreError):
            await store.get_statistics()


class TestRetrievalOverSupabase:
    @pytest.mark.asyncio
    async def test_html_search_reply_falls_back_to_lexical_search(
        self, make_embedding_provider: Callable[..., Any]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/rpc/search_f1_documents"):
                return httpx.Response(200, text="<html>gateway</html>")
            return httpx.Response(200, json=[_row()])

        embedder = EmbeddingGenerator([make_embedding_provider(vector=[0.1] * DIM)], dimension=DIM)
        results = await RetrievalService(embedder, _store(handler)).retrieve("Swift Racing")

        assert [r.document.team for r in results] == ["Swift Racing"]
        assert results[0].similarity == FALLBACK_SIMILARITY

    @pytest.mark.asyncio
    async def test_html_everywhere_returns_empty(self, make_embedding_provider: Callable[..., Any]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        embedder = EmbeddingGenerator([make_embedding_provider(vector=[0.1] * DIM)], dimension=DIM)
        assert await RetrievalService(embedder, _store(handler)).retrieve("Swift Racing") == []


class TestStatisticsAndHealth:
    @pytest.mark.asyncio
    async def test_statistics_mapping(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/rest/v1/rpc/get_f1_statistics"
            return httpx.Response(
                200,
                json={
                    "totalDocuments": 3,
                    "categories": ["drivers", "teams"],
                    "seasons": ["2024"],
                    "sources": ["a.json"],
                    "teams": None,
                    "drivers": ["A. Pilot"],
                    "documentsByCategory": {"drivers": 2, "teams": 1},
                    "documentsBySeason": {"2024": 3},
                },
            )

        store = _store(handler)
        stats = await store.get_statistics()

        assert stats.total_documents == 3
        assert stats.teams == []
        assert sum(stats.documents_by_category.values()) == stats.total_documents

    @pytest.mark.asyncio
    async def test_health_counts_documents(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Prefer"] == "count=exact"
            return httpx.Response(200, json=[{"id": "x"}], headers={"Content-Range": "0-0/42"})

        store = _store(handler)
        status = await store.health_check()

        assert status.is_healthy
        assert status.documents_count == 42

    @pytest.mark.asyncio
    async def test_health_reports_missing_table(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"code": "42P01", "message": "relation does not exist"})

        store = _store(handler)
        status = await store.health_check()

        assert status.status == "unhealthy"
        assert status.connection_working is True
        assert status.tables_exist is False

    @pytest.mark.asyncio
    async def test_health_unconfigured(self) -> None:
        store = _store(lambda request: httpx.Response(200), supabase_url="")
        status = await store.health_check()
        assert status.configured is False
        assert not status.is_healthy


class TestInitializeAndClear:
    @pytest.mark.asyncio
    async def test_initialize_without_db_url_reports_missing_table(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"code": "PGRST205", "message": "missing"})

        store = _store(handler)
        with pytest.raises(ConfigurationError):
            await store.initialize()

    @pytest.mark.asyncio
    async def test_clear_deletes_every_row(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        store = _store(handler)
        await store.clear()

        assert seen[0].method == "DELETE"
        assert seen[0].url.params["id"] == "neq.00000000-0000-0000-0000-000000000000"
