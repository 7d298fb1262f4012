"""Per-entity serialization for balance mutations.

Two layers keep concurrent requests from losing updates:

1. ``entity_lock`` hands out one ``asyncio.Lock`` per (kind, id), held for
   the full read-modify-write-commit of a mutation. Requests against
   different entities get different locks and run in parallel.
2. ``Account`` and ``TradePosition`` carry a SQLAlchemy ``version_id_col``.
   If another process committed first, the UPDATE matches no row and
   ``commit_or_conflict`` turns the resulting ``StaleDataError`` into a
   ``ConflictError`` for the caller to retry.
"""

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from navfund import telemetry
from navfund.exceptions import ConflictError

logger = logging.getLogger(__name__)

# Locks disappear once no coroutine holds or waits on them
_locks: "weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def _get_lock(kind: str, entity_id: str) -> asyncio.Lock:
    key = (kind, entity_id)
    lock = _locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _locks[key] = lock
    return lock


@asynccontextmanager
async def entity_lock(kind: str, entity_id: str) -> AsyncIterator[None]:
    """Serialize mutations of a single entity within this process.

    Args:
        kind: Entity kind, e.g. "account" or "position"
        entity_id: Primary key of the entity
    """
    lock = _get_lock(kind, entity_id)
    async with lock:
        yield


async def commit_or_conflict(session: AsyncSession, kind: str, entity_id: str) -> None:
    """Commit the unit of work, mapping a lost optimistic race to ConflictError.

    Args:
        session: Database session holding the pending changes
        kind: Entity kind, for the error message
        entity_id: Entity that was being updated

    Raises:
        ConflictError: If the entity was modified concurrently
    """
    try:
        await session.commit()
    except StaleDataError:
        await session.rollback()
        telemetry.record_conflict(kind)
        logger.warning(
            "Concurrent update detected",
            extra={"entity_kind": kind, "entity_id": entity_id},
        )
        raise ConflictError(
            f"{kind.capitalize()} '{entity_id}' was modified concurrently, retry the request",
            details={"kind": kind, "id": entity_id},
        )
