import logging

import pytest
from opentelemetry import trace

from app.observability.logging import add_trace_context, build_processors, resolve_level


tracer = trace.get_tracer("tests.logging")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("INFO", logging.INFO),
        ("debug", logging.DEBUG),
        (" warning ", logging.WARNING),
        (logging.ERROR, logging.ERROR),
        ("chatty", logging.INFO),
    ],
)
def test_resolve_level(value, expected) -> None:
    assert resolve_level(value) == expected


def test_trace_context_is_added_inside_a_span() -> None:
    with tracer.start_as_current_span("work") as span:
        event = add_trace_context(None, "info", {"event": "hello"})

    span_context = span.get_span_context()
    assert event["trace_id"] == trace.format_trace_id(span_context.trace_id)
    assert event["span_id"] == trace.format_span_id(span_context.span_id)
    assert event["trace_flags"] == int(span_context.trace_flags)


def test_trace_context_keeps_explicit_values() -> None:
    with tracer.start_as_current_span("work"):
        event = add_trace_context(None, "error", {"event": "boom", "trace_id": "given"})
    assert event["trace_id"] == "given"


def test_trace_context_skipped_without_span() -> None:
    assert add_trace_context(None, "info", {"event": "idle"}) == {"event": "idle"}


def test_processors_stamp_service_name() -> None:
    add_service = next(p for p in build_processors("todo-service") if getattr(p, "__name__", "") == "add_service")
    assert add_service(None, "info", {"event": "x"}) == {"event": "x", "service": "todo-service"}
