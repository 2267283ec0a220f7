from __future__ import annotations

from typing import Any

import structlog
from opentelemetry import metrics
from opentelemetry.metrics import Histogram, Meter


HTTP_CALLS_INSTRUMENT = "http-calls"

logger = structlog.get_logger("metrics")


class HttpCallsRecorder:
    """Records one duration sample per completed request on the `http-calls` histogram."""

    def __init__(self, meter: Meter) -> None:
        self._histogram: Histogram = meter.create_histogram(
            HTTP_CALLS_INSTRUMENT,
            unit="ms",
            description="Duration of inbound HTTP calls",
        )

    def record_duration(
        self,
        duration_ms: int,
        *,
        route: str | None,
        status: int,
        method: str,
    ) -> None:
        # Attribute values may not be None; an unmatched route is simply left out.
        labels: dict[str, Any] = {"status": int(status), "method": str(method)}
        if route is not None:
            labels["route"] = str(route)

        try:
            self._histogram.record(max(0, int(duration_ms)), attributes=labels)
        except Exception:  # noqa: BLE001 - recording must never break the response path
            logger.warning("metric_record_failed", instrument=HTTP_CALLS_INSTRUMENT, labels=labels, exc_info=True)


_RECORDER: HttpCallsRecorder | None = None


def set_recorder(recorder: HttpCallsRecorder | None) -> None:
    global _RECORDER
    _RECORDER = recorder


def get_recorder() -> HttpCallsRecorder:
    global _RECORDER
    if _RECORDER is None:
        _RECORDER = HttpCallsRecorder(metrics.get_meter("app.http"))
    return _RECORDER
