"""Repository interface shared by every record store backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Sequence, TypeVar

ModelT = TypeVar("ModelT")

# Default ordering; a leading "-" sorts descending
DEFAULT_ORDER: tuple[str, ...] = ("id",)


def parse_order(order_by: Sequence[str] | None) -> list[tuple[str, bool]]:
    """Turn ``("-created_at", "id")`` into ``[("created_at", True), ("id", False)]``."""
    parsed = []
    for name in order_by or DEFAULT_ORDER:
        descending = name.startswith("-")
        parsed.append((name.lstrip("-"), descending))
    return parsed


class Repository(ABC, Generic[ModelT]):
    """Get/list/create/update/delete by id for a single ORM model.

    Filters passed to :meth:`list` are equality matches on mapped
    attribute names; ``None`` matches a NULL column.
    """

    def __init__(self, model: type[ModelT]):
        self.model = model

    @abstractmethod
    async def get(self, record_id: int) -> ModelT | None: ...

    @abstractmethod
    async def list(
        self, order_by: Sequence[str] | None = None, **filters: Any
    ) -> list[ModelT]: ...

    @abstractmethod
    async def create(self, record: ModelT) -> ModelT: ...

    @abstractmethod
    async def update(self, record: ModelT, **changes: Any) -> ModelT: ...

    @abstractmethod
    async def delete(self, record: ModelT) -> None: ...

    async def first(self, **filters: Any) -> ModelT | None:
        rows = await self.list(**filters)
        return rows[0] if rows else None

    def _check_fields(self, names: Sequence[str]) -> None:
        for name in names:
            if not hasattr(self.model, name):
                raise AttributeError(
                    f"{self.model.__name__} has no attribute {name!r}"
                )
