import logging
from dataclasses import asdict, dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.storage.accounts import lock_account
from core.storage.classifier import StorageClass, StorageClassifier, default_classifier
from core.storage.volume import VolumeOrigin, round_volume, volume_for
from db.inventory.item import InventoryItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecalculationResult:
    cold_used: float
    dry_used: float
    previous_cold_used: float
    previous_dry_used: float
    item_count: int

    def as_dict(self) -> dict:
        return asdict(self)


async def recalculate(
    db: AsyncSession,
    user_id: UUID,
    classifier: StorageClassifier = default_classifier,
) -> RecalculationResult:
    """
    Replace cold_used/dry_used with a fresh sum over the user's current inventory.

    Capacities are untouched. Harvest volume is not part of the inventory
    snapshot, so anything the ledger added for harvests is dropped here.
    The caller commits (or rolls back) the overwrite as one unit.
    """
    # Lock first so no ledger delta can land between the sum and the overwrite.
    account = await lock_account(db, user_id)
    previous_cold = float(account.cold_used or 0)
    previous_dry = float(account.dry_used or 0)

    res = await db.execute(
        select(InventoryItem.category, InventoryItem.quantity).where(InventoryItem.user_id == user_id)
    )
    rows = res.all()

    totals = {StorageClass.COLD: 0.0, StorageClass.DRY: 0.0}
    for category, quantity in rows:
        totals[classifier.for_category(category)] += volume_for(quantity, VolumeOrigin.INVENTORY)

    account.cold_used = round_volume(totals[StorageClass.COLD])
    account.dry_used = round_volume(totals[StorageClass.DRY])
    await db.flush()

    result = RecalculationResult(
        cold_used=account.cold_used,
        dry_used=account.dry_used,
        previous_cold_used=previous_cold,
        previous_dry_used=previous_dry,
        item_count=len(rows),
    )
    if previous_cold != result.cold_used or previous_dry != result.dry_used:
        logger.info(
            "Storage drift corrected for user %s: cold %.6f -> %.6f, dry %.6f -> %.6f (%d items)",
            user_id,
            previous_cold,
            result.cold_used,
            previous_dry,
            result.dry_used,
            result.item_count,
        )
    else:
        logger.info("Storage recalculated for user %s: no drift (%d items)", user_id, result.item_count)
    return result
