from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from opentelemetry import propagate, trace
from opentelemetry.trace import SpanKind, Status, StatusCode
from starlette.datastructures import Headers, MutableHeaders

from app.observability.metrics import get_recorder


tracer = trace.get_tracer("app.http")


def _route_path(scope: dict[str, Any]) -> str | None:
    route = scope.get("route")
    return getattr(route, "path", None)


class RequestContextMiddleware:
    """Adds request_id context, a server span, access logs, and the `http-calls` sample."""

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path")
        method = scope.get("method", "GET")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        # Continue an upstream trace (traceparent + baggage headers) when present.
        parent = propagate.extract(dict(Headers(scope=scope)))

        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        with tracer.start_as_current_span(
            f"{method} {path}",
            context=parent,
            kind=SpanKind.SERVER,
            attributes={"http.method": method, "http.target": path or ""},
        ) as span:
            structlog.contextvars.bind_contextvars(
                trace_id=trace.format_trace_id(span.get_span_context().trace_id),
            )
            try:
                await self.app(scope, receive, send_wrapper)
            finally:
                elapsed_ms = (perf_counter() - start) * 1000.0
                route = _route_path(scope)

                # Record the metric first so it lands even if logging misbehaves.
                get_recorder().record_duration(
                    int(elapsed_ms),
                    route=route,
                    status=status_code,
                    method=method,
                )

                if route is not None:
                    span.update_name(f"{method} {route}")
                    span.set_attribute("http.route", route)
                span.set_attribute("http.status_code", status_code)
                if status_code >= 500:
                    span.set_status(Status(StatusCode.ERROR))

                structlog.get_logger("access").info(
                    "http_request",
                    status_code=status_code,
                    route=route,
                    elapsed_ms=round(elapsed_ms, 2),
                )

                structlog.contextvars.clear_contextvars()
