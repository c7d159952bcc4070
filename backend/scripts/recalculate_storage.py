"""
Recompute cold/dry storage usage from current inventory for every user.

Usage totals are overwritten with the inventory-based sum; capacities are kept.
Harvest volume booked by the ledger is dropped, same as POST /inventory/storage/recalculate.

Run inside docker (recommended):
  docker exec -i farm-api sh -lc "cd /app && PYTHONPATH=/app uv run python scripts/recalculate_storage.py"
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.storage.accounts import run_atomic
from core.storage.recalculation import RecalculationResult, recalculate
from db.database import async_session_maker
from db.inventory.item import InventoryItem
from db.storage import StorageAccount

logger = logging.getLogger(__name__)


async def _all_user_ids(db: AsyncSession) -> list:
    res = await db.execute(
        union(
            select(InventoryItem.user_id),
            select(StorageAccount.user_id),
        )
    )
    return sorted({row[0] for row in res.all()}, key=str)


async def recalculate_all(
    session_maker: async_sessionmaker,
    user_ids: Optional[Iterable[UUID]] = None,
) -> Dict[UUID, RecalculationResult]:
    """Recalculate each user in its own transaction. Defaults to every user with items or an account."""
    if user_ids is None:
        async with session_maker() as db:
            user_ids = await _all_user_ids(db)

    results: Dict[UUID, RecalculationResult] = {}
    for user_id in user_ids:
        async with session_maker() as db:
            results[user_id] = await run_atomic(db, lambda: recalculate(db, user_id))
    logger.info("Recalculated storage for %d users", len(results))
    return results


async def main() -> None:
    results = await recalculate_all(async_session_maker)
    drifted = 0
    for user_id, r in results.items():
        if r.previous_cold_used != r.cold_used or r.previous_dry_used != r.dry_used:
            drifted += 1
            print(
                f"{user_id}: cold {r.previous_cold_used} -> {r.cold_used}, "
                f"dry {r.previous_dry_used} -> {r.dry_used} ({r.item_count} items)"
            )
    print(f"Recalculated {len(results)} users, {drifted} corrected")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
