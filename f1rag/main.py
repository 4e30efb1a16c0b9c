"""f1rag FastAPI application entry point and dependency wiring.

Every client (boto3 ``bedrock-runtime`` per region, the shared
``httpx.AsyncClient``, the OpenRouter ``AsyncOpenAI``) is constructed here
once and injected into providers and services.  The same
:func:`build_services` assembly backs the HTTP app and the CLIs.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from f1rag import __version__
from f1rag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from f1rag.api.routes import router as api_router
from f1rag.config.settings import Settings
from f1rag.interfaces.document_store import IDocumentStore
from f1rag.interfaces.embedding_provider import IEmbeddingProvider
from f1rag.interfaces.llm_provider import ILLMProvider
from f1rag.providers.document_store.astra_store import AstraDocumentStore
from f1rag.providers.document_store.supabase_store import SupabaseDocumentStore
from f1rag.providers.embedding.bedrock_embedding_provider import BedrockEmbeddingProvider
from f1rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from f1rag.providers.llm.bedrock_provider import BedrockLLMProvider
from f1rag.providers.llm.openai_provider import (
    OpenAICompatibleLLMProvider,
    build_openrouter_client,
)
from f1rag.services.answer_service import AnswerService
from f1rag.services.embedding_generator import EmbeddingGenerator
from f1rag.services.ingestion.ingestion_service import IngestionService
from f1rag.services.record_normalizer import RecordNormalizer
from f1rag.services.retrieval_service import RetrievalService
from f1rag.utils.errors import ConfigurationError
from f1rag.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_generator(app_settings: Settings) -> EmbeddingGenerator:
    """Build the generator over the configured embedding endpoints.

    ``bedrock`` -> one provider per region, configured region first.
    ``openai``  -> a single OpenAI-compatible provider.
    """
    backend = app_settings.embedding_backend.strip().lower()
    providers: list[IEmbeddingProvider]
    if backend == "bedrock":
        providers = [
            BedrockEmbeddingProvider(settings=app_settings, region=region)
            for region in app_settings.get_bedrock_regions()
        ]
    elif backend == "openai":
        if not app_settings.openai_api_key:
            raise ConfigurationError(
                message="EMBEDDING_BACKEND=openai requires OPENAI_API_KEY",
            )
        providers = [OpenAIEmbeddingProvider(settings=app_settings)]
    else:
        raise ConfigurationError(
            message=f"Unknown EMBEDDING_BACKEND {app_settings.embedding_backend!r}; "
            "expected bedrock or openai",
        )

    if not providers:
        raise ConfigurationError(message="No Bedrock regions configured (BEDROCK_REGIONS)")

    return EmbeddingGenerator(
        providers=providers,
        dimension=app_settings.embedding_dimension,
        stagger_delay=app_settings.ingest_stagger_delay,
        batch_delay=app_settings.ingest_embedding_delay,
    )


def _build_document_store(
    app_settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> IDocumentStore:
    """Select the document store (explicit choice, else Supabase, else Astra)."""
    backend = app_settings.get_document_backend()
    if backend == "supabase":
        if not app_settings.supabase_configured:
            raise ConfigurationError(
                message="DOCUMENT_BACKEND=supabase requires SUPABASE_URL and a Supabase key",
                provider_name="supabase",
            )
        return SupabaseDocumentStore(settings=app_settings, client=http_client)

    if not app_settings.astra_configured:
        raise ConfigurationError(
            message="DOCUMENT_BACKEND=astra requires ASTRA_DB_APPLICATION_TOKEN "
            "and ASTRA_DB_API_ENDPOINT",
            provider_name="astra",
        )
    return AstraDocumentStore(settings=app_settings, client=http_client)


def _build_llm_providers(app_settings: Settings) -> list[ILLMProvider]:
    """Chat providers in failover order: Bedrock regions, then OpenRouter models."""
    providers: list[ILLMProvider] = []
    if app_settings.use_bedrock_chat:
        providers.extend(
            BedrockLLMProvider(settings=app_settings, region=region)
            for region in app_settings.get_bedrock_regions()
        )
    if app_settings.openrouter_api_key:
        client = build_openrouter_client(app_settings)
        providers.extend(
            OpenAICompatibleLLMProvider(settings=app_settings, model=model, client=client)
            for model in app_settings.get_openrouter_models()
        )
    if not providers:
        _logger.warning(
            "no_chat_providers",
            msg="Answers will fall back to quoting retrieved context.",
        )
    return providers


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_services(app_settings: Settings | None = None) -> dict[str, Any]:
    """Construct every provider and service.

    Returns a flat dict of named components; the FastAPI lifespan stores
    them on ``app.state`` and the CLIs use them directly.

    Raises
    ------
    ConfigurationError
        If no document store or embedding backend can be built.
    """
    app_settings = app_settings or settings
    http_client = httpx.AsyncClient(timeout=app_settings.http_timeout)

    embedder = _build_embedding_generator(app_settings)
    store = _build_document_store(app_settings, http_client)
    retrieval = RetrievalService(
        embedder=embedder,
        store=store,
        default_threshold=app_settings.retrieval_threshold,
        default_limit=app_settings.retrieval_limit,
    )
    llm_providers = _build_llm_providers(app_settings)
    answer_service = AnswerService(
        retrieval=retrieval,
        providers=llm_providers,
        max_tokens=app_settings.chat_max_tokens,
        temperature=app_settings.chat_temperature,
    )
    normalizer = RecordNormalizer()
    ingestion_service = IngestionService(
        normalizer=normalizer,
        embedder=embedder,
        store=store,
    )

    return {
        "settings": app_settings,
        "http_client": http_client,
        "embedder": embedder,
        "document_store": store,
        "retrieval_service": retrieval,
        "answer_service": answer_service,
        "normalizer": normalizer,
        "ingestion_service": ingestion_service,
        "embedding_provider_names": embedder.get_provider_names(),
        "llm_provider_names": [p.get_provider_name() for p in llm_providers],
    }


async def close_services(components: dict[str, Any]) -> None:
    """Release network resources held by :func:`build_services` components."""
    store: IDocumentStore | None = components.get("document_store")
    if store is not None:
        await store.close()
    http_client: httpx.AsyncClient | None = components.get("http_client")
    if http_client is not None:
        await http_client.aclose()


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Parameters
    ----------
    app_settings:
        Settings to build services from; the module-level settings by default.
    components:
        Pre-built components (tests inject mocks here).  When given,
        :func:`build_services` is not called and nothing is closed on
        shutdown.
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        owned = components is None
        built = build_services(app_settings) if owned else components
        for key, value in built.items():
            setattr(application.state, key, value)

        _logger.info(
            "app_startup",
            version=__version__,
            environment=app_settings.app_env,
            backend=built["document_store"].get_provider_name(),
            embedding_endpoints=len(built.get("embedding_provider_names", [])),
            chat_providers=len(built.get("llm_provider_names", [])),
        )
        yield
        if owned:
            await close_services(built)
        _logger.info("app_shutdown")

    application = FastAPI(
        title="f1rag API",
        version=__version__,
        description=(
            "Retrieval-augmented question answering over Formula 1 drivers, "
            "teams, results, qualifying and calendars."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, app_settings.get_cors_origins())

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "f1rag.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
