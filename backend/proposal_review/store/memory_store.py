"""In-process record store.

Keeps detached ORM instances in dicts keyed by an auto-incrementing id.
Used when no database is configured and as the test double for the
SQLAlchemy store; both return the same model classes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Sequence

from proposal_review.store.base import ModelT, Repository, parse_order


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sort_key(value: Any) -> tuple[int, Any]:
    # NULLs sort first, like ascending NULLS FIRST
    return (0, 0) if value is None else (1, value)


class InMemoryRepository(Repository[ModelT]):
    """Repository over one ORM model held in a dict."""

    def __init__(self, model: type[ModelT]):
        super().__init__(model)
        self._rows: dict[int, ModelT] = {}
        self._last_id = 0

    async def get(self, record_id: int) -> ModelT | None:
        return self._rows.get(record_id)

    async def list(
        self, order_by: Sequence[str] | None = None, **filters: Any
    ) -> list[ModelT]:
        self._check_fields(list(filters))
        rows = [
            row
            for row in self._rows.values()
            if all(getattr(row, name) == value for name, value in filters.items())
        ]
        # Stable sorts applied from the least significant key outwards
        for name, descending in reversed(parse_order(order_by)):
            rows.sort(key=lambda row: _sort_key(getattr(row, name)), reverse=descending)
        return rows

    async def create(self, record: ModelT) -> ModelT:
        if getattr(record, "id", None) is None:
            self._last_id += 1
            record.id = self._last_id
        else:
            self._last_id = max(self._last_id, record.id)
        now = _utcnow()
        for stamp in ("created_at", "updated_at"):
            if hasattr(self.model, stamp) and getattr(record, stamp) is None:
                setattr(record, stamp, now)
        self._rows[record.id] = record
        return record

    async def update(self, record: ModelT, **changes: Any) -> ModelT:
        self._check_fields(list(changes))
        for name, value in changes.items():
            setattr(record, name, value)
        if hasattr(self.model, "updated_at") and "updated_at" not in changes:
            record.updated_at = _utcnow()
        self._rows[record.id] = record
        return record

    async def delete(self, record: ModelT) -> None:
        self._rows.pop(record.id, None)
