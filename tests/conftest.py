from __future__ import annotations

import fnmatch
import json
from collections.abc import AsyncIterator, Iterator
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from opentelemetry import trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from app.config import get_settings
from app.observability.metrics import HTTP_CALLS_INSTRUMENT, HttpCallsRecorder, set_recorder
from app.services.auth_client import set_auth_http_client
from app.services.todo_store import DEFAULT_ITEMS, set_store_client


# The global tracer provider can only be installed once per process.
SPAN_EXPORTER = InMemorySpanExporter()
_provider = TracerProvider()
_provider.add_span_processor(SimpleSpanProcessor(SPAN_EXPORTER))
trace.set_tracer_provider(_provider)

from app.main import app  # noqa: E402


class MockRedis:
    """Just enough of redis.asyncio.Redis for the todo store."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(data or {})
        self.error: Exception | None = None
        # Keys removed right after KEYS returns, to mimic a concurrent delete.
        self.delete_after_listing: set[str] = set()
        self.get_calls: list[str] = []

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    async def keys(self, pattern: str) -> list[str]:
        self._check()
        found = [key for key in self.data if fnmatch.fnmatchcase(key, pattern)]
        for key in self.delete_after_listing:
            self.data.pop(key, None)
        return found

    async def get(self, key: str) -> str | None:
        self._check()
        self.get_calls.append(key)
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._check()
        self.data[key] = value
        return True

    async def aclose(self) -> None:
        return None


class MockAuthService:
    def __init__(self) -> None:
        self.status_code = 200
        self.payload: Any = {"plan": "enterprise"}
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)


def seeded_data() -> dict[str, str]:
    return {key: json.dumps({"name": name}) for key, name in DEFAULT_ITEMS.items()}


def http_call_points(reader: InMemoryMetricReader) -> list[Any]:
    data = reader.get_metrics_data()
    if data is None:
        return []
    points: list[Any] = []
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == HTTP_CALLS_INSTRUMENT:
                    points.extend(metric.data.data_points)
    return points


def exception_events(spans: Any) -> list[Any]:
    return [event for span in spans for event in span.events if event.name == "exception"]


@pytest.fixture
def redis_store() -> MockRedis:
    return MockRedis(seeded_data())


@pytest.fixture
def auth_service() -> MockAuthService:
    return MockAuthService()


@pytest.fixture
def metric_reader() -> InMemoryMetricReader:
    return InMemoryMetricReader()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return SPAN_EXPORTER


@pytest.fixture(autouse=True)
def test_environment(
    monkeypatch: pytest.MonkeyPatch,
    redis_store: MockRedis,
    auth_service: MockAuthService,
    metric_reader: InMemoryMetricReader,
) -> Iterator[None]:
    monkeypatch.setenv("AUTH_URL", "http://auth.test/auth")
    monkeypatch.setenv("REDIS_URL", "redis://redis.test:6379")
    monkeypatch.setenv("SEED_DEFAULT_ITEMS", "false")
    get_settings.cache_clear()

    set_store_client(redis_store)
    set_auth_http_client(httpx.AsyncClient(transport=httpx.MockTransport(auth_service.handler)))
    meter_provider = MeterProvider(metric_readers=[metric_reader])
    set_recorder(HttpCallsRecorder(meter_provider.get_meter("tests")))
    SPAN_EXPORTER.clear()

    yield

    set_store_client(None)
    set_auth_http_client(None)
    set_recorder(None)
    meter_provider.shutdown()
    SPAN_EXPORTER.clear()
    get_settings.cache_clear()


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
