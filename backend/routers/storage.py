import logging
import traceback
from typing import Awaitable, Callable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.storage.accounts import StorageRetryableError, StorageSnapshot, get_storage, run_atomic, set_capacity
from core.storage.alerts import evaluate_alerts
from core.storage.classifier import StorageClass
from core.storage.recalculation import recalculate
from db.database import get_async_session
from db.users import User
from schemas.storage import (
    InventoryAlertsRead,
    RecalculationRead,
    StorageRead,
    StorageUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")


async def run_storage_unit(db: AsyncSession, work: Callable[[], Awaitable[T]], action: str) -> T:
    """
    Run a unit of work that touches a StorageAccount and commit it.

    - HTTPException from `work` passes through (after rollback).
    - Exhausted write-conflict retries -> 503 with Retry-After.
    - Anything else -> logged, 500.
    """
    try:
        return await run_atomic(db, work)
    except HTTPException:
        raise
    except StorageRetryableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to {action}: {e}",
            headers={"Retry-After": "1"},
        )
    except Exception as e:
        logger.error("%s failed: %r\n%s", action, e, traceback.format_exc())
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}")


def _storage_out(snapshot: StorageSnapshot) -> StorageRead:
    return StorageRead(
        **snapshot.as_dict(),
        cold_percentage=round(snapshot.percentage(StorageClass.COLD), 1),
        dry_percentage=round(snapshot.percentage(StorageClass.DRY), 1),
    )


@router.get("/storage", response_model=StorageRead)
async def get_storage_info(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    return _storage_out(await get_storage(db, user.id))


@router.put("/storage", response_model=StorageRead)
async def update_storage(
    payload: StorageUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Manual override of capacities and usage (e.g. initial setup). Omitted fields are left unchanged."""
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    # A rollback inside the unit expires `user`; keep the id as a plain value.
    user_id = user.id

    async def _work():
        account = await set_capacity(db, user_id, **data)
        return StorageSnapshot.from_account(account)

    snapshot = await run_storage_unit(db, _work, "update storage")
    return _storage_out(snapshot)


@router.post("/storage/recalculate", response_model=RecalculationRead)
async def recalculate_storage(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Rebuild cold/dry usage from the current inventory, discarding accumulated drift."""
    user_id = user.id
    result = await run_storage_unit(db, lambda: recalculate(db, user_id), "recalculate storage")
    return RecalculationRead(**result.as_dict())


@router.get("/alerts", response_model=InventoryAlertsRead)
async def get_inventory_alerts(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    alerts = await evaluate_alerts(db, user.id)
    logger.info(
        "Inventory alerts for user %s: %d low stock, %d storage",
        user.id,
        len(alerts["low_stock_items"]),
        len(alerts["storage_alerts"]),
    )
    return InventoryAlertsRead(
        low_stock_items=[it.to_schema for it in alerts["low_stock_items"]],
        storage_alerts=alerts["storage_alerts"],
    )
