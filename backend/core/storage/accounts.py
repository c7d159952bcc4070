"""
StorageAccount persistence.

Both write paths (ledger deltas and full recalculation) go through
lock_account() inside run_atomic(), so every read-modify-write on a user's
account is serialized:

- PostgreSQL: SELECT ... FOR UPDATE row lock, held until commit.
- SQLite: FOR UPDATE is ignored; writers are serialized by the database lock.
- Both: the `version` column is an optimistic lock; a stale write raises
  StaleDataError and the whole unit of work is retried.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from core.config import settings
from core.storage.classifier import StorageClass
from core.storage.volume import round_volume
from db.storage import StorageAccount

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageRetryableError(RuntimeError):
    """The storage write did not go through; nothing was applied and the call can be retried."""


@dataclass(frozen=True)
class StorageSnapshot:
    cold_capacity: float = 0.0
    cold_used: float = 0.0
    dry_capacity: float = 0.0
    dry_used: float = 0.0

    @classmethod
    def from_account(cls, account: Optional[StorageAccount]) -> "StorageSnapshot":
        if account is None:
            return cls()
        return cls(**account.to_schema)

    def capacity(self, storage_class: StorageClass) -> float:
        return self.cold_capacity if storage_class == StorageClass.COLD else self.dry_capacity

    def used(self, storage_class: StorageClass) -> float:
        return self.cold_used if storage_class == StorageClass.COLD else self.dry_used

    def percentage(self, storage_class: StorageClass) -> float:
        capacity = self.capacity(storage_class)
        if capacity <= 0:
            return 0.0
        return self.used(storage_class) / capacity * 100

    def as_dict(self) -> dict:
        return {
            "cold_capacity": self.cold_capacity,
            "cold_used": self.cold_used,
            "dry_capacity": self.dry_capacity,
            "dry_used": self.dry_used,
        }


def used_attr(storage_class: StorageClass) -> str:
    return "cold_used" if StorageClass(storage_class) == StorageClass.COLD else "dry_used"


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Unsupported database dialect for storage accounts: {dialect}")


async def _select_account(db: AsyncSession, user_id: UUID, *, for_update: bool) -> Optional[StorageAccount]:
    stmt = select(StorageAccount).where(StorageAccount.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    # Always reload: the identity map may hold values from before another writer committed.
    res = await db.execute(stmt.execution_options(populate_existing=True))
    return res.scalar_one_or_none()


async def get_storage(db: AsyncSession, user_id: UUID) -> StorageSnapshot:
    """Current account values; a user without an account reads as all zeros."""
    return StorageSnapshot.from_account(await _select_account(db, user_id, for_update=False))


async def lock_account(db: AsyncSession, user_id: UUID) -> StorageAccount:
    """Load the user's account with a write lock, creating a zeroed one on first use."""
    account = await _select_account(db, user_id, for_update=True)
    if account is not None:
        return account

    insert = _insert_for(db)
    tbl = StorageAccount.__table__
    await db.execute(
        insert(tbl)
        .values(
            user_id=user_id,
            cold_capacity=0.0,
            cold_used=0.0,
            dry_capacity=0.0,
            dry_used=0.0,
            version=1,
        )
        # A concurrent first mutation may have created it already
        .on_conflict_do_nothing(index_elements=[tbl.c.user_id])
    )
    logger.info("Storage account created for user %s", user_id)
    return await _select_account(db, user_id, for_update=True)


async def set_capacity(
    db: AsyncSession,
    user_id: UUID,
    *,
    cold_capacity: Optional[float] = None,
    cold_used: Optional[float] = None,
    dry_capacity: Optional[float] = None,
    dry_used: Optional[float] = None,
) -> StorageAccount:
    """Manual override of capacities and/or usage. Omitted fields are left unchanged."""
    updates = {
        "cold_capacity": cold_capacity,
        "cold_used": cold_used,
        "dry_capacity": dry_capacity,
        "dry_used": dry_used,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    for field, value in updates.items():
        if float(value) < 0:
            raise ValueError(f"{field} must be >= 0")

    account = await lock_account(db, user_id)
    for field, value in updates.items():
        setattr(account, field, round_volume(value))
    await db.flush()

    logger.info("Storage account updated for user %s: %s", user_id, updates)
    return account


async def run_atomic(
    db: AsyncSession,
    work: Callable[[], Awaitable[T]],
    *,
    attempts: Optional[int] = None,
) -> T:
    """Run one unit of work and commit it, retrying the whole unit on write conflicts.

    `work` must do all of its reads itself: after a rollback every loaded
    object is expired. Any error other than a write conflict rolls back and
    propagates unchanged.
    """
    attempts = max(1, attempts or settings.storage_write_attempts)
    for attempt in range(1, attempts + 1):
        try:
            result = await work()
            await db.commit()
            return result
        except (StaleDataError, OperationalError) as e:
            await db.rollback()
            if attempt >= attempts:
                logger.error("Storage write failed after %d attempts: %r", attempts, e)
                raise StorageRetryableError("Storage is busy, please retry") from e
            logger.warning("Storage write conflict (attempt %d/%d), retrying: %r", attempt, attempts, e)
        except Exception:
            await db.rollback()
            raise
