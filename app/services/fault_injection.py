from __future__ import annotations

import asyncio

from opentelemetry import trace

from app.config import get_settings
from app.models.schemas import InjectionFlags
from app.services.errors import InjectedFailure, SpanDiagnostics


async def apply_injection(flags: InjectionFlags) -> None:
    """Optionally delay, then optionally fail.

    A failure is recorded on the active span before it propagates; the error
    carries that span's identity so the response writer can log it.
    """

    if flags.slow:
        await asyncio.sleep(get_settings().slow_delay_seconds)

    if flags.fail:
        try:
            raise InjectedFailure()
        except InjectedFailure as exc:
            span = trace.get_current_span()
            span.record_exception(exc)
            exc.diagnostics = SpanDiagnostics.from_span(span)
            raise
