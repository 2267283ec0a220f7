from __future__ import annotations

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from app.config import Settings


logger = structlog.get_logger("telemetry")

_TRACER_PROVIDER: TracerProvider | None = None
_METER_PROVIDER: MeterProvider | None = None


def configure_telemetry(settings: Settings) -> None:
    """Install the global tracer and meter providers for this process.

    Exporters are only attached when an OTLP endpoint is configured; without one
    spans and metrics are still produced (ids, baggage, log correlation) but
    not shipped anywhere.
    """

    global _TRACER_PROVIDER, _METER_PROVIDER
    if _TRACER_PROVIDER is not None:
        return

    resource = Resource.create({SERVICE_NAME: settings.service_name})
    endpoint = settings.otlp_endpoint.rstrip("/")

    tracer_provider = TracerProvider(resource=resource)
    readers: list[MetricReader] = []
    if endpoint:
        tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")))
        readers.append(
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics"),
                export_interval_millis=settings.metric_export_interval_ms,
            )
        )
    meter_provider = MeterProvider(resource=resource, metric_readers=readers)

    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(meter_provider)
    _TRACER_PROVIDER = tracer_provider
    _METER_PROVIDER = meter_provider

    logger.info("telemetry_configured", service_name=settings.service_name, otlp_endpoint=endpoint or None)


def shutdown_telemetry() -> None:
    """Flush pending spans/metrics; called from the shutdown hook."""

    global _TRACER_PROVIDER, _METER_PROVIDER
    if _TRACER_PROVIDER is not None:
        _TRACER_PROVIDER.shutdown()
    if _METER_PROVIDER is not None:
        _METER_PROVIDER.shutdown()
    _TRACER_PROVIDER = None
    _METER_PROVIDER = None
