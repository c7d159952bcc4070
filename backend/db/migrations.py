"""Database migration utilities"""
import logging
import uuid

from sqlalchemy import inspect, select, text
from sqlalchemy.ext.asyncio import AsyncEngine

from .storage import StorageAccount
from .users import User

logger = logging.getLogger(__name__)

LEGACY_INVENTORY_TABLE = "inventory"
LEGACY_STORAGE_COLUMNS = {
    "cold_storage_capacity": "cold_capacity",
    "cold_storage_used": "cold_used",
    "dry_storage_capacity": "dry_capacity",
    "dry_storage_used": "dry_used",
}


def _legacy_columns(sync_conn) -> set:
    insp = inspect(sync_conn)
    if not insp.has_table(LEGACY_INVENTORY_TABLE):
        return set()
    return {c["name"] for c in insp.get_columns(LEGACY_INVENTORY_TABLE)}


def _as_volume(value) -> float:
    if value is None:
        return 0.0
    return max(0.0, float(value))


async def migrate_legacy_storage_columns(engine: AsyncEngine) -> int:
    """
    Move storage totals off the legacy `inventory` table into `storage_accounts`.

    The old schema kept each user's capacity/usage on their first inventory
    row. For every user that has no storage account yet, the first row (by
    created_at) is copied over. Users that already have an account are left
    alone, so running this again is a no-op.

    Returns the number of accounts created.
    """
    async with engine.begin() as conn:
        columns = await conn.run_sync(_legacy_columns)
        if not set(LEGACY_STORAGE_COLUMNS) <= columns or "user_id" not in columns:
            logger.info("No legacy storage columns on '%s', nothing to migrate", LEGACY_INVENTORY_TABLE)
            return 0

        order_by = "user_id, created_at" if "created_at" in columns else "user_id"
        result = await conn.execute(
            text(
                f"""
                SELECT user_id, {", ".join(LEGACY_STORAGE_COLUMNS)}
                FROM {LEGACY_INVENTORY_TABLE}
                ORDER BY {order_by}
                """
            )
        )
        first_rows = {}
        for row in result.mappings():
            first_rows.setdefault(str(row["user_id"]), row)

        known_users = set((await conn.execute(select(User.id))).scalars().all())
        existing = set((await conn.execute(select(StorageAccount.user_id))).scalars().all())

        created = 0
        for raw_user_id, row in first_rows.items():
            try:
                user_id = uuid.UUID(raw_user_id)
            except ValueError:
                logger.warning("Skipping legacy storage for non-UUID user id %r", raw_user_id)
                continue
            if user_id in existing:
                continue
            if user_id not in known_users:
                logger.warning("Skipping legacy storage for unknown user %s", user_id)
                continue

            values = {new: _as_volume(row[old]) for old, new in LEGACY_STORAGE_COLUMNS.items()}
            await conn.execute(StorageAccount.__table__.insert().values(user_id=user_id, version=1, **values))
            created += 1

        logger.info("Migrated legacy storage columns: %d accounts created", created)
        return created
