"""Async key-value store access for todo items (redis)."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as aioredis
import structlog
from opentelemetry import trace
from redis.exceptions import RedisError

from app.config import get_settings
from app.observability.calls import traced_call
from app.services.errors import CollaboratorUnavailable, MalformedStoredItem

T = TypeVar("T")

DEFAULT_ITEMS: dict[str, str] = {
    "todo:1": "Install OpenTelemetry SDK",
    "todo:2": "Deploy OpenTelemetry Collector",
    "todo:3": "Configure sampling rule",
    "todo:4": "You are OpenTelemetry master!",
}

logger = structlog.get_logger("todo_store")

_client: Any | None = None


def set_store_client(client: Any | None) -> None:
    global _client
    _client = client


def get_store_client() -> Any:
    global _client
    if _client is None:
        settings = get_settings()
        _client = aioredis.from_url(settings.redis_url, decode_responses=True)
    return _client


async def close_store_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def _call(operation: str, fn: Callable[[], Awaitable[T]], **attributes: Any) -> T:
    async def _guarded() -> T:
        try:
            return await fn()
        except RedisError as exc:
            raise CollaboratorUnavailable("redis", str(exc) or type(exc).__name__) from exc

    return await traced_call(
        operation=f"redis.{operation}",
        peer="redis",
        fn=_guarded,
        attributes={"db.system": "redis", "db.operation": operation.upper(), **attributes},
    )


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


async def list_keys(pattern: str) -> list[str]:
    client = get_store_client()
    found = await _call("keys", lambda: client.keys(pattern), **{"db.pattern": pattern})
    return [_text(k) for k in found]


async def get_value(key: str) -> str | None:
    client = get_store_client()
    # With decode_responses=True redis-py itself raises UnicodeDecodeError on bad bytes.
    try:
        value = await _call("get", lambda: client.get(key), **{"db.key": key})
        return None if value is None else _text(value)
    except UnicodeDecodeError as exc:
        raise MalformedStoredItem(key, f"not valid UTF-8 ({exc.reason})") from exc


async def set_value(key: str, value: str) -> bool:
    client = get_store_client()
    return bool(await _call("set", lambda: client.set(key, value), **{"db.key": key}))


async def seed_default_items() -> None:
    """Write the four starter todos inside a one-off `Set default items` span."""

    tracer = trace.get_tracer("init")
    with tracer.start_as_current_span("Set default items"):
        await asyncio.gather(
            *(set_value(key, json.dumps({"name": name})) for key, name in DEFAULT_ITEMS.items())
        )
    logger.info("seed.complete", keys=list(DEFAULT_ITEMS))
