"""Record store backed by a SQLAlchemy ``AsyncSession``.

The session lifecycle (commit / rollback) belongs to the caller; every
write here only flushes so that ids and server defaults are populated.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from proposal_review.exceptions import ConflictError
from proposal_review.store.base import ModelT, Repository, parse_order

logger = logging.getLogger(__name__)


class SqlAlchemyRepository(Repository[ModelT]):
    """Repository over one ORM model using an async session."""

    def __init__(self, session: AsyncSession, model: type[ModelT]):
        super().__init__(model)
        self.session = session

    async def get(self, record_id: int) -> ModelT | None:
        return await self.session.get(self.model, record_id)

    async def list(
        self, order_by: Sequence[str] | None = None, **filters: Any
    ) -> list[ModelT]:
        self._check_fields(list(filters))
        query = select(self.model)
        for name, value in filters.items():
            query = query.where(getattr(self.model, name) == value)

        for name, descending in parse_order(order_by):
            column = getattr(self.model, name)
            query = query.order_by(column.desc() if descending else column.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(self, record: ModelT) -> ModelT:
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        return record

    async def update(self, record: ModelT, **changes: Any) -> ModelT:
        self._check_fields(list(changes))
        for name, value in changes.items():
            setattr(record, name, value)
        await self._flush_versioned(record)
        await self.session.refresh(record)
        return record

    async def delete(self, record: ModelT) -> None:
        await self.session.delete(record)
        await self._flush_versioned(record)

    async def _flush_versioned(self, record: ModelT) -> None:
        """Flush, turning a lost version race into a ``ConflictError``."""
        try:
            await self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "Concurrent update detected on %s %s: %s",
                self.model.__name__,
                getattr(record, "id", None),
                exc,
            )
            raise ConflictError(
                "This record was changed by another request; reload and retry"
            ) from exc
