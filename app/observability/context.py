from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeVar

from opentelemetry import baggage as otel_baggage
from opentelemetry import trace
from opentelemetry import context as otel_context
from opentelemetry.context import Context


T = TypeVar("T")


@dataclass(frozen=True)
class PropagationContext:
    """Request-scoped trace identity plus baggage.

    Wraps an OpenTelemetry `Context`. The underlying storage is a contextvar, so
    attaching it inside one asyncio task never leaks into another task.
    """

    otel: Context
    trace_id: str
    span_id: str
    baggage: Mapping[str, object] = field(default_factory=dict)

    def derive(self, baggage_entries: Mapping[str, object]) -> PropagationContext:
        """Child context with extra baggage; `self` is left untouched."""

        return create_context(baggage_entries, parent=self.otel)


def create_context(baggage_entries: Mapping[str, object], parent: Context | None = None) -> PropagationContext:
    ctx = parent if parent is not None else otel_context.get_current()
    for key, value in baggage_entries.items():
        ctx = otel_baggage.set_baggage(key, value, context=ctx)

    span_context = trace.get_current_span(ctx).get_span_context()
    return PropagationContext(
        otel=ctx,
        trace_id=trace.format_trace_id(span_context.trace_id),
        span_id=trace.format_span_id(span_context.span_id),
        baggage=MappingProxyType(dict(otel_baggage.get_all(context=ctx))),
    )


async def with_context(ctx: PropagationContext, fn: Callable[[], Awaitable[T]]) -> T:
    """Await `fn()` with `ctx` as the ambient context, restoring the previous one afterwards."""

    token = otel_context.attach(ctx.otel)
    try:
        return await fn()
    finally:
        otel_context.detach(token)


def current_baggage(key: str) -> Any:
    return otel_baggage.get_baggage(key)
