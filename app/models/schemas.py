from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class TodoItem(BaseModel):
    name: str


class AggregatedResponse(BaseModel):
    todos: list[TodoItem]
    user: Any = None


class InjectionFlags(BaseModel):
    slow: bool = False
    fail: bool = False

    @classmethod
    def from_query(cls, slow: str | None, fail: str | None) -> InjectionFlags:
        # Any non-empty value counts, including "0" and "false".
        return cls(slow=bool(slow), fail=bool(fail))
