"""
Incremental storage usage updates.

Each inventory/harvest mutation becomes one signed volume delta on one
storage class of the owner's StorageAccount:

- item created            +volume(quantity)
- item quantity changed   volume(new) - volume(old)
- item deleted            -volume(quantity)
- harvest recorded        +volume(amount, harvest origin); never reversed

Callers run apply_event() in the same unit of work (see accounts.run_atomic)
as the mutation that produced the event.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from core.storage.accounts import lock_account, used_attr
from core.storage.classifier import StorageClass, StorageClassifier, default_classifier
from core.storage.events import (
    HarvestRecorded,
    InventoryItemCreated,
    InventoryItemDeleted,
    InventoryItemQuantityChanged,
    StorageEvent,
)
from core.storage.volume import VolumeOrigin, round_volume, volume_for
from db.storage import StorageAccount

logger = logging.getLogger(__name__)


def delta_for_event(
    event: StorageEvent,
    classifier: StorageClassifier = default_classifier,
) -> Tuple[StorageClass, float]:
    if isinstance(event, InventoryItemCreated):
        return (
            classifier.for_category(event.category),
            volume_for(event.quantity, VolumeOrigin.INVENTORY),
        )
    if isinstance(event, InventoryItemQuantityChanged):
        return (
            classifier.for_category(event.category),
            round_volume(
                volume_for(event.new_quantity, VolumeOrigin.INVENTORY)
                - volume_for(event.old_quantity, VolumeOrigin.INVENTORY)
            ),
        )
    if isinstance(event, InventoryItemDeleted):
        return (
            classifier.for_category(event.category),
            -volume_for(event.quantity, VolumeOrigin.INVENTORY),
        )
    if isinstance(event, HarvestRecorded):
        return (
            classifier.for_crop(event.crop_name),
            volume_for(event.amount, VolumeOrigin.HARVEST),
        )
    raise TypeError(f"Unsupported storage event: {type(event).__name__}")


async def apply_delta(
    db: AsyncSession,
    user_id: UUID,
    storage_class: StorageClass,
    volume_delta: float,
) -> StorageAccount:
    """Add a signed volume to one class's usage, clamping the result at zero."""
    account = await lock_account(db, user_id)
    attr = used_attr(storage_class)

    current = float(getattr(account, attr) or 0)
    new_value = round_volume(current + volume_delta)
    if new_value < 0:
        # Usage drifted below what is being removed; absorb it instead of storing a negative total.
        logger.warning(
            "Storage usage clamped to zero: user=%s class=%s current=%.6f delta=%.6f",
            user_id,
            StorageClass(storage_class).value,
            current,
            volume_delta,
        )
        new_value = 0.0

    setattr(account, attr, new_value)
    await db.flush()

    logger.info(
        "Storage usage updated: user=%s class=%s %.6f -> %.6f (delta %+.6f)",
        user_id,
        StorageClass(storage_class).value,
        current,
        new_value,
        volume_delta,
    )
    return account


async def apply_event(
    db: AsyncSession,
    event: StorageEvent,
    classifier: StorageClassifier = default_classifier,
) -> Optional[StorageAccount]:
    """Apply the delta for one mutation event. Returns None when there is nothing to change."""
    storage_class, volume_delta = delta_for_event(event, classifier)
    if volume_delta == 0:
        return None
    return await apply_delta(db, event.user_id, storage_class, volume_delta)
