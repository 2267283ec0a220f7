from __future__ import annotations

from dataclasses import dataclass

from opentelemetry import trace
from opentelemetry.trace import Span


@dataclass(frozen=True)
class SpanDiagnostics:
    trace_id: str
    span_id: str
    trace_flags: int

    @classmethod
    def from_span(cls, span: Span) -> SpanDiagnostics:
        span_context = span.get_span_context()
        return cls(
            trace_id=trace.format_trace_id(span_context.trace_id),
            span_id=trace.format_span_id(span_context.span_id),
            trace_flags=int(span_context.trace_flags),
        )


class TodoServiceError(Exception):
    """Base for every failure that ends a request with a bare 500."""


class AggregationFailed(TodoServiceError):
    pass


class CollaboratorUnavailable(AggregationFailed):
    def __init__(self, collaborator: str, message: str) -> None:
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


class MalformedStoredItem(AggregationFailed):
    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"Malformed todo at {key!r}: {message}")
        self.key = key


class InjectedFailure(TodoServiceError):
    """Deliberate failure requested with `?fail=`; carries the span it was recorded on."""

    def __init__(self, message: str = "Really bad error!") -> None:
        super().__init__(message)
        self.diagnostics: SpanDiagnostics | None = None
