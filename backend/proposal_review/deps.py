"""Shared dependencies for all proposal review routers.

Centralises the record store dependency, the caller dependency and the
rate-limiter reference so that every router module can
``from proposal_review.deps import …`` without importing ``main``.
"""

import logging
from collections.abc import AsyncGenerator

from proposal_review.auth import get_current_caller
from proposal_review.database import async_session_factory, is_database_configured
from proposal_review.security import get_client_ip, limiter, rate_limit_bulk
from proposal_review.store import InMemoryStore, RecordStore, SqlAlchemyStore

__all__ = [
    "get_store",
    "get_current_caller",
    "reset_memory_store",
    "limiter",
    "rate_limit_bulk",
    "get_client_ip",
]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------------
# Process-wide store used when DATABASE_URL is unset
_memory_store = InMemoryStore()


def reset_memory_store() -> InMemoryStore:
    """Replace the process-wide in-memory store with an empty one."""
    global _memory_store
    _memory_store = InMemoryStore()
    return _memory_store


async def get_store() -> AsyncGenerator[RecordStore, None]:
    """Yield the record store for one request.

    With a database, the store wraps a request-scoped session that commits
    on success and rolls back on error, so a request that fails part way
    leaves no partial writes.
    """
    if not is_database_configured():
        yield _memory_store
        return

    async with async_session_factory() as session:
        try:
            yield SqlAlchemyStore(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
