"""Offset pagination over in-memory result lists."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Window:
    limit: int
    offset: int

    def slice(self, items: Sequence[T]) -> Sequence[T]:
        return items[self.offset : self.offset + self.limit]


def get_window(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> Window:
    """FastAPI dependency for limit/offset query params."""
    return Window(limit=limit, offset=offset)


class Page(BaseModel, Generic[T]):
    """Generic paginated response."""

    items: list[T]
    total: int
    limit: int
    offset: int


def paginate(items: Sequence[R], window: Window, serialize: Callable[[R], T]) -> Page[T]:
    """Serialize only the requested window; ``total`` counts the full list."""
    return Page(
        items=[serialize(item) for item in window.slice(items)],
        total=len(items),
        limit=window.limit,
        offset=window.offset,
    )
