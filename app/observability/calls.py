from __future__ import annotations

from collections.abc import Awaitable, Callable
from time import perf_counter
from typing import Any, TypeVar

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode


T = TypeVar("T")

tracer = trace.get_tracer("app.collaborators")


async def traced_call(
    *,
    operation: str,
    peer: str,
    fn: Callable[[], Awaitable[T]],
    attributes: dict[str, Any] | None = None,
) -> T:
    """Run one collaborator call in a CLIENT child span, timing and logging it."""

    log = structlog.get_logger("collaborator")
    with tracer.start_as_current_span(
        operation,
        kind=SpanKind.CLIENT,
        attributes={"peer.service": peer, **(attributes or {})},
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        start = perf_counter()
        try:
            result = await fn()
        except Exception as exc:
            elapsed_ms = (perf_counter() - start) * 1000.0
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.set_attribute("error.type", type(exc).__name__)
            log.warning(
                "collaborator_call_failed",
                operation=operation,
                peer=peer,
                elapsed_ms=round(elapsed_ms, 2),
                error=str(exc),
            )
            raise

        elapsed_ms = (perf_counter() - start) * 1000.0
        log.debug("collaborator_call", operation=operation, peer=peer, elapsed_ms=round(elapsed_ms, 2))
        return result
