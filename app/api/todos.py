from __future__ import annotations

from fastapi import APIRouter, Query, Response

from app.models.schemas import InjectionFlags
from app.services.todo_pipeline import handle_todos

router = APIRouter(tags=["todos"])


@router.get("/todos")
async def get_todos(
    slow: str | None = Query(default=None),
    fail: str | None = Query(default=None),
) -> Response:
    return await handle_todos(InjectionFlags.from_query(slow=slow, fail=fail))
