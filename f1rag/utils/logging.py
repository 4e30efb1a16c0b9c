"""Structured logging setup using structlog.

One shared processor chain (context vars, log level, stack info, exception
info, ISO timestamps) feeds either a coloured ``ConsoleRenderer`` for local
work or a ``JSONRenderer`` for production.  The renderer follows ``APP_ENV``
(``"production"`` means JSON) unless ``json_output`` forces it.

Standard-library ``logging`` is routed through the same chain so that boto3,
httpx and uvicorn lines look like ours.  Those libraries are chatty at INFO
(every HTTP request, every credential lookup), so they are capped at WARNING.

Ingestion runs call :func:`bind_run_context` so every line emitted while a
run is in progress carries its ``run_id``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

# Third-party loggers that would otherwise log every request at INFO.
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore", "openai")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib bridge.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: Force JSON rendering.  Otherwise JSON is used only when
            ``APP_ENV`` is ``production``.

    Returns:
        The root structlog logger.
    """
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    level = logging.getLevelName(log_level.upper())

    renderer: structlog.types.Processor
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *shared,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to *name*, configuring defaults if needed."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)


def bind_run_context(**values: Any) -> None:
    """Bind key/value pairs to every log line in the current context."""
    structlog.contextvars.bind_contextvars(**values)


def clear_run_context(*keys: str) -> None:
    """Remove keys bound by :func:`bind_run_context` (all keys when none given)."""
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()
