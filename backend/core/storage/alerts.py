from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.storage.accounts import StorageSnapshot, get_storage
from core.storage.classifier import StorageClass
from db.inventory.item import InventoryItem


def low_stock_items(items: Iterable[InventoryItem]) -> List[InventoryItem]:
    return [it for it in items if it.needs_reorder]


def storage_alerts(
    snapshot: StorageSnapshot,
    medium_pct: Optional[float] = None,
    high_pct: Optional[float] = None,
) -> List[dict]:
    medium_pct = settings.storage_alert_medium_pct if medium_pct is None else medium_pct
    high_pct = settings.storage_alert_high_pct if high_pct is None else high_pct

    out = []
    for storage_class in (StorageClass.COLD, StorageClass.DRY):
        percentage = snapshot.percentage(storage_class)
        if percentage >= high_pct:
            severity = "high"
        elif percentage >= medium_pct:
            severity = "medium"
        else:
            continue
        out.append(
            {
                "storage_class": storage_class.value,
                "percentage": round(percentage, 1),
                "severity": severity,
                # whole percent, halves round up (76.5 -> 77)
                "message": (
                    f"{storage_class.value.capitalize()} storage is {int(percentage + 0.5)}% full"
                    " - consider cleaning or expanding"
                ),
            }
        )
    return out


async def evaluate_alerts(db: AsyncSession, user_id: UUID) -> dict:
    """Low-stock items and storage threshold alerts for one user. Nothing is persisted."""
    res = await db.execute(
        select(InventoryItem)
        .where(InventoryItem.user_id == user_id)
        .where(InventoryItem.reorder_level.is_not(None))
        .order_by(InventoryItem.name.asc())
    )
    items = res.scalars().all()
    snapshot = await get_storage(db, user_id)
    return {
        "low_stock_items": low_stock_items(items),
        "storage_alerts": storage_alerts(snapshot),
    }
