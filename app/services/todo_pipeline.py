from __future__ import annotations

import structlog
from fastapi import Response
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from app.models.schemas import AggregatedResponse, InjectionFlags
from app.observability.context import create_context, with_context
from app.services.aggregation import aggregate
from app.services.errors import InjectedFailure, TodoServiceError
from app.services.fault_injection import apply_injection

REQUEST_BAGGAGE: dict[str, object] = {"user.plan": "enterprise"}

logger = structlog.get_logger("todos")


def render_error(exc: TodoServiceError) -> Response:
    """Single exit point for failed requests: log once, answer a bare 500."""

    span = trace.get_current_span()
    span.set_status(Status(StatusCode.ERROR, str(exc)))

    if isinstance(exc, InjectedFailure):
        diagnostics = exc.diagnostics
        logger.error(
            str(exc),
            error_kind="InjectedFailure",
            trace_id=diagnostics.trace_id if diagnostics else None,
            span_id=diagnostics.span_id if diagnostics else None,
            trace_flags=diagnostics.trace_flags if diagnostics else None,
        )
    else:
        span.record_exception(exc)
        logger.error("todos_request_failed", error_kind=type(exc).__name__, error=str(exc), exc_info=exc)

    return Response(status_code=500)


def render_success(payload: AggregatedResponse) -> Response:
    return JSONResponse(payload.model_dump(mode="json"))


async def handle_todos(flags: InjectionFlags) -> Response:
    ctx = create_context(REQUEST_BAGGAGE)

    async def _run() -> AggregatedResponse:
        payload = await aggregate()
        await apply_injection(flags)
        return payload

    try:
        payload = await with_context(ctx, _run)
    except TodoServiceError as exc:
        return render_error(exc)
    return render_success(payload)
