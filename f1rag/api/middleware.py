"""HTTP middleware for the f1rag API.

``RequestLoggingMiddleware`` tags each request with a short id (bound into
the structlog context so service-level log lines carry it too) and logs one
``http_request`` line when the response is ready.  ``ErrorHandlingMiddleware``
turns ``F1RagError`` subclasses into ``ErrorResponse`` JSON bodies.

``create_app`` adds the error handler before the logger; Starlette runs the
last-added middleware first, so the logged status is the converted one.
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from f1rag.api.schemas import ErrorResponse
from f1rag.utils.errors import (
    ConfigurationError,
    DocumentValidationError,
    F1RagError,
    RateLimitError,
)
from f1rag.utils.logging import bind_run_context, clear_run_context, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def configure_cors(app: FastAPI, allowed_origins: list[str] | None = None) -> None:
    """Allow the chat front end (any origin unless *allowed_origins* is set)."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One structured log line per request, with a request id."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        bind_run_context(request_id=request_id)
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            log = _logger.warning if status >= 500 else _logger.info
            log(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            clear_run_context("request_id")


def status_for(exc: F1RagError) -> int:
    """HTTP status for an application error."""
    if isinstance(exc, DocumentValidationError):
        return 400
    if isinstance(exc, RateLimitError):
        return 429
    if isinstance(exc, ConfigurationError):
        return 503
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Render ``F1RagError`` as ``{"error": <class>, "detail": <message>}``.

    Provider names stay in the log.  Anything else propagates to FastAPI's
    default 500 handling.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except F1RagError as exc:
            status = status_for(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                status=status,
            )
            return JSONResponse(
                status_code=status,
                content=ErrorResponse(error=type(exc).__name__, detail=exc.message).model_dump(),
            )
