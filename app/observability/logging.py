from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from app.config import Settings


_CONFIGURED = False

# Loggers that follow our handler; httpx logs every auth call at INFO otherwise.
_ADOPTED_LOGGERS: dict[str, int | None] = {
    "uvicorn": None,
    "uvicorn.error": None,
    "uvicorn.access": None,
    "httpx": logging.WARNING,
}


def resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def add_trace_context(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Stamp the active span identity; explicit values passed by the caller win."""

    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict.setdefault("trace_id", trace.format_trace_id(span_context.trace_id))
        event_dict.setdefault("span_id", trace.format_span_id(span_context.span_id))
        event_dict.setdefault("trace_flags", int(span_context.trace_flags))
    return event_dict


def build_processors(service_name: str) -> list[Any]:
    """Processors shared by structlog loggers and foreign (stdlib) records."""

    def add_service(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service,
        add_trace_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(settings: Settings) -> None:
    """JSON logs on stdout for structlog and stdlib alike. No-op after the first call."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    level = resolve_level(settings.log_level)
    shared = build_processors(settings.service_name)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name, override in _ADOPTED_LOGGERS.items():
        adopted = logging.getLogger(name)
        adopted.handlers = [handler]
        adopted.propagate = False
        adopted.setLevel(max(level, override) if override is not None else level)

    _CONFIGURED = True
