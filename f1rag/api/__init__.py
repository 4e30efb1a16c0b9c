"""f1rag API layer: routes, schemas, and middleware."""

from f1rag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from f1rag.api.routes import router
from f1rag.api.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
    StatsResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
    "HealthResponse",
    "SearchRequest",
    "SearchResponse",
    "StatsResponse",
]
