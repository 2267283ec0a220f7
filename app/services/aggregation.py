from __future__ import annotations

import structlog
from opentelemetry import trace
from pydantic import ValidationError

from app.config import get_settings
from app.models.schemas import AggregatedResponse, TodoItem
from app.observability.context import current_baggage
from app.services import auth_client, todo_store
from app.services.errors import MalformedStoredItem

tracer = trace.get_tracer("app.aggregation")
logger = structlog.get_logger("aggregation")


def _parse_item(key: str, raw: str) -> TodoItem:
    try:
        return TodoItem.model_validate_json(raw)
    except ValidationError as exc:
        raise MalformedStoredItem(key, str(exc)) from exc


async def aggregate() -> AggregatedResponse:
    """Fetch the user from auth, then every stored todo one key at a time.

    Keys are fetched sequentially in enumeration order. A key deleted between
    enumeration and fetch is skipped.
    """

    with tracer.start_as_current_span("aggregate todos", record_exception=False) as span:
        plan = current_baggage("user.plan")
        if plan is not None:
            span.set_attribute("user.plan", str(plan))

        user = await auth_client.fetch_user()

        todo_keys = await todo_store.list_keys(get_settings().todo_key_pattern)
        todos: list[TodoItem] = []
        for key in todo_keys:
            raw = await todo_store.get_value(key)
            if raw is None:
                logger.debug("todo_vanished", key=key)
                continue
            todos.append(_parse_item(key, raw))

        span.set_attribute("todos.count", len(todos))
        return AggregatedResponse(todos=todos, user=user)
