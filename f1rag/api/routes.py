"""FastAPI API routes for f1rag.

Service dependencies are resolved from ``app.state`` (populated in the
lifespan handler of :func:`f1rag.main.create_app`) via ``Depends`` using the
``Annotated`` pattern.

Endpoint              Method  Description
/api/v1/chat          POST    Retrieve context and synthesize an answer
/api/v1/search        POST    Retrieval only, ranked documents
/api/v1/stats         GET     Document-store statistics
/api/v1/health        GET     Store health and configured providers
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from f1rag import __version__
from f1rag.api.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
    SourceMetadata,
    StatsResponse,
)
from f1rag.interfaces.document_store import IDocumentStore
from f1rag.models.document import SearchResult
from f1rag.services.answer_service import AnswerService
from f1rag.services.retrieval_service import RetrievalService
from f1rag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_answer_service(request: Request) -> AnswerService:
    return request.app.state.answer_service


def _get_retrieval_service(request: Request) -> RetrievalService:
    return request.app.state.retrieval_service


def _get_document_store(request: Request) -> IDocumentStore:
    return request.app.state.document_store


AnswerServiceDep = Annotated[AnswerService, Depends(_get_answer_service)]
RetrievalServiceDep = Annotated[RetrievalService, Depends(_get_retrieval_service)]
DocumentStoreDep = Annotated[IDocumentStore, Depends(_get_document_store)]


def _to_hit(result: SearchResult) -> SearchHit:
    doc = result.document
    position = doc.position.value if hasattr(doc.position, "value") else doc.position
    return SearchHit(
        id=doc.id or "",
        text=doc.text,
        source=doc.source,
        category=doc.category.value,
        season=doc.season,
        track=doc.track,
        driver=doc.driver,
        team=doc.team,
        position=position,
        points=doc.points,
        similarity=result.similarity,
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Answer a Formula 1 question from the knowledge base",
)
async def chat(body: ChatRequest, answer_service: AnswerServiceDep) -> ChatResponse:
    """Retrieve relevant documents and synthesize an answer."""
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")

    filters = body.filters.to_search_filters() if body.filters else None
    result = await answer_service.answer(message, filters=filters, limit=body.limit)
    _logger.info(
        "chat_answered",
        provider=result.provider,
        used_fallback=result.used_fallback,
        documents=len(result.sources),
    )
    return ChatResponse(
        answer=result.answer,
        provider=result.provider,
        used_fallback=result.used_fallback,
        metadata=SourceMetadata(
            sources=sorted({s.source for s in result.sources}),
            categories=result.categories,
            seasons=result.seasons,
            documents_used=len(result.sources),
        ),
    )


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Search the knowledge base",
)
async def search(body: SearchRequest, retrieval: RetrievalServiceDep) -> SearchResponse:
    """Return ranked documents for *query* without answer synthesis."""
    filters = body.filters.to_search_filters() if body.filters else None
    results = await retrieval.retrieve(
        body.query,
        filters=filters,
        limit=body.limit,
        threshold=body.threshold,
    )
    hits = [_to_hit(r) for r in results]
    return SearchResponse(query=body.query, results=hits, total=len(hits))


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Document-store statistics",
)
async def stats(store: DocumentStoreDep) -> StatsResponse:
    statistics = await store.get_statistics()
    return StatsResponse(**statistics.model_dump())


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
    summary="Application health check",
)
async def health_check(request: Request, store: DocumentStoreDep) -> HealthResponse | JSONResponse:
    """Return store health and the configured provider chains.

    Responds 503 when the store is unreachable or its table/collection is
    missing.
    """
    status = await store.health_check()
    body = HealthResponse(
        status=status.status,
        version=__version__,
        backend=status.backend,
        store=status.model_dump(),
        providers={
            "embedding": list(getattr(request.app.state, "embedding_provider_names", [])),
            "llm": list(getattr(request.app.state, "llm_provider_names", [])),
        },
    )
    if not status.is_healthy:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
