"""Unit tests for the factory functions in f1rag/main.py.

Covers embedding backend selection, document store selection, chat
provider ordering, build_services assembly and the create_app factory.
boto3 clients are patched out so no AWS credentials are needed.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from f1rag.config.settings import Settings
from f1rag.providers.document_store.astra_store import AstraDocumentStore
from f1rag.providers.document_store.supabase_store import SupabaseDocumentStore
from f1rag.providers.llm.bedrock_provider import BedrockLLMProvider
from f1rag.providers.llm.openai_provider import OpenAICompatibleLLMProvider
from f1rag.utils.errors import ConfigurationError

_EMBED_CLIENT = "f1rag.providers.embedding.bedrock_embedding_provider.build_bedrock_client"
_CHAT_CLIENT = "f1rag.providers.llm.bedrock_provider.build_bedrock_client"


# ======================================================================
# Shared helpers
# ======================================================================


def _settings(**overrides) -> Settings:
    """Settings with every credential empty unless overridden."""
    defaults = {
        "aws_region": "us-east-1",
        "aws_access_key_id": "",
        "aws_secret_access_key": "",
        "bedrock_regions": "us-east-1,us-west-2",
        "embedding_backend": "bedrock",
        "openai_api_key": "",
        "openai_base_url": "",
        "openrouter_api_key": "",
        "openrouter_chat_models": "openai/gpt-4o-mini,meta-llama/llama-3-70b",
        "use_bedrock_chat": True,
        "document_backend": "",
        "supabase_url": "",
        "supabase_anon_key": "",
        "supabase_service_role_key": "",
        "astra_db_application_token": "",
        "astra_db_api_endpoint": "",
        "app_env": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# _build_embedding_generator
# ======================================================================


class TestBuildEmbeddingGenerator:
    def test_bedrock_builds_one_provider_per_region(self) -> None:
        from f1rag.main import _build_embedding_generator

        with patch(_EMBED_CLIENT, return_value=MagicMock()) as build_client:
            generator = _build_embedding_generator(_settings())

        assert generator.get_provider_names() == ["bedrock-us-east-1", "bedrock-us-west-2"]
        assert build_client.call_count == 2

    def test_openai_requires_key(self) -> None:
        from f1rag.main import _build_embedding_generator

        with pytest.raises(ConfigurationError):
            _build_embedding_generator(_settings(embedding_backend="openai"))

    def test_openai_backend(self) -> None:
        from f1rag.main import _build_embedding_generator

        generator = _build_embedding_generator(
            _settings(embedding_backend="openai", openai_api_key="sk-test")
        )
        assert generator.get_provider_names() == ["openai-embedding"]

    def test_unknown_backend(self) -> None:
        from f1rag.main import _build_embedding_generator

        with pytest.raises(ConfigurationError):
            _build_embedding_generator(_settings(embedding_backend="ollama"))

    def test_no_regions(self) -> None:
        from f1rag.main import _build_embedding_generator

        with pytest.raises(ConfigurationError):
            _build_embedding_generator(_settings(aws_region="", bedrock_regions=""))


# ======================================================================
# _build_document_store
# ======================================================================


class TestBuildDocumentStore:
    def test_supabase_when_configured(self) -> None:
        from f1rag.main import _build_document_store

        store = _build_document_store(
            _settings(supabase_url="https://proj.supabase.co", supabase_anon_key="anon"),
            httpx.AsyncClient(),
        )
        assert isinstance(store, SupabaseDocumentStore)

    def test_astra_when_only_astra_configured(self) -> None:
        from f1rag.main import _build_document_store

        store = _build_document_store(
            _settings(
                astra_db_application_token="AstraCS:t",
                astra_db_api_endpoint="https://db.apps.astra.datastax.com",
            ),
            httpx.AsyncClient(),
        )
        assert isinstance(store, AstraDocumentStore)

    def test_explicit_backend_without_credentials(self) -> None:
        from f1rag.main import _build_document_store

        with pytest.raises(ConfigurationError) as excinfo:
            _build_document_store(_settings(document_backend="astra"))
        assert excinfo.value.provider_name == "astra"

    def test_nothing_configured(self) -> None:
        from f1rag.main import _build_document_store

        with pytest.raises(ConfigurationError):
            _build_document_store(_settings())


# ======================================================================
# _build_llm_providers
# ======================================================================


class TestBuildLLMProviders:
    def test_bedrock_regions_then_openrouter_models(self) -> None:
        from f1rag.main import _build_llm_providers

        with patch(_CHAT_CLIENT, return_value=MagicMock()):
            providers = _build_llm_providers(_settings(openrouter_api_key="or-key"))

        assert [type(p) for p in providers] == [
            BedrockLLMProvider,
            BedrockLLMProvider,
            OpenAICompatibleLLMProvider,
            OpenAICompatibleLLMProvider,
        ]
        assert providers[2].get_provider_name() == "openrouter-openai/gpt-4o-mini"

    def test_openrouter_only(self) -> None:
        from f1rag.main import _build_llm_providers

        providers = _build_llm_providers(
            _settings(use_bedrock_chat=False, openrouter_api_key="or-key")
        )
        assert len(providers) == 2
        assert all(isinstance(p, OpenAICompatibleLLMProvider) for p in providers)

    def test_no_providers(self) -> None:
        from f1rag.main import _build_llm_providers

        assert _build_llm_providers(_settings(use_bedrock_chat=False)) == []


# ======================================================================
# build_services / close_services
# ======================================================================


class TestBuildServices:
    @pytest.mark.asyncio
    async def test_assembles_and_closes(self) -> None:
        from f1rag.main import build_services, close_services

        app_settings = _settings(
            supabase_url="https://proj.supabase.co",
            supabase_service_role_key="service",
            use_bedrock_chat=False,
        )
        with patch(_EMBED_CLIENT, return_value=MagicMock()):
            components = build_services(app_settings)

        assert components["settings"] is app_settings
        assert components["embedding_provider_names"] == ["bedrock-us-east-1", "bedrock-us-west-2"]
        assert components["llm_provider_names"] == []
        assert components["document_store"].get_provider_name() == "supabase"

        await close_services(components)
        assert components["http_client"].is_closed


# ======================================================================
# create_app
# ======================================================================


class TestCreateApp:
    def test_returns_fastapi_with_routes(self) -> None:
        from f1rag.main import create_app

        app = create_app(_settings(), components={})
        paths = set(app.openapi()["paths"])

        assert isinstance(app, FastAPI)
        assert {"/api/v1/chat", "/api/v1/search", "/api/v1/stats", "/api/v1/health"} <= paths

    def test_lifespan_puts_components_on_state(self, mock_document_store: MagicMock) -> None:
        from f1rag.main import create_app

        mock_document_store.get_provider_name.return_value = "mock-store"
        components = {
            "document_store": mock_document_store,
            "embedding_provider_names": ["bedrock-us-east-1"],
            "llm_provider_names": [],
        }
        app = create_app(_settings(), components=components)

        with TestClient(app):
            assert app.state.document_store is mock_document_store
            assert app.state.embedding_provider_names == ["bedrock-us-east-1"]

        # Injected components are owned by the caller.
        mock_document_store.close.assert_not_awaited()

    def test_build_services_is_not_called_with_components(self, mock_document_store: MagicMock) -> None:
        from f1rag.main import create_app

        app = create_app(_settings(), components={"document_store": mock_document_store})
        with patch("f1rag.main.build_services", new=MagicMock()) as build:
            with TestClient(app):
                pass
        build.assert_not_called()

    def test_owned_services_are_closed(self, mock_document_store: MagicMock) -> None:
        from f1rag.main import create_app

        components = {"document_store": mock_document_store}
        app = create_app(_settings())
        with (
            patch("f1rag.main.build_services", return_value=components),
            patch("f1rag.main.close_services", new=AsyncMock()) as close,
        ):
            with TestClient(app):
                pass
        close.assert_awaited_once_with(components)
