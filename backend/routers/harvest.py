import logging
from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.storage.events import HarvestRecorded
from core.storage.ledger import apply_event
from db.database import get_async_session
from db.harvest import Harvest as HarvestModel
from db.users import User
from routers.storage import run_storage_unit
from schemas.harvest import CropYieldRead, HarvestCreate, HarvestRead, HarvestUpdate, HarvestYieldRead

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_owned_harvest(db: AsyncSession, user_id: UUID, harvest_id: UUID) -> HarvestModel:
    res = await db.execute(
        select(HarvestModel).where(HarvestModel.id == harvest_id, HarvestModel.user_id == user_id)
    )
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Harvest not found")
    return model


@router.get("/", response_model=List[HarvestRead])
async def list_harvests(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(HarvestModel)
        .where(HarvestModel.user_id == user.id)
        .order_by(HarvestModel.harvest_date.desc(), HarvestModel.created_at.desc())
    )
    return [HarvestRead(**h.to_schema) for h in res.scalars().all()]


@router.get("/yield", response_model=HarvestYieldRead)
async def get_yield_by_crop(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Harvest totals per crop, with the average of the recorded yield percentages."""
    res = await db.execute(
        select(HarvestModel)
        .where(HarvestModel.user_id == user.id)
        .order_by(HarvestModel.harvest_date.asc())
    )
    by_crop: Dict[str, dict] = {}
    for h in res.scalars().all():
        key = h.crop_name.strip().lower()
        row = by_crop.setdefault(
            key,
            {"crop_name": h.crop_name, "total_harvest": 0.0, "harvest_unit": h.harvest_unit, "harvest_count": 0, "yields": []},
        )
        row["total_harvest"] += float(h.harvest_amount or 0)
        row["harvest_count"] += 1
        if h.yield_percentage is not None:
            row["yields"].append(float(h.yield_percentage))

    crops = []
    for row in by_crop.values():
        yields = row.pop("yields")
        crops.append(
            CropYieldRead(
                **row,
                average_yield=(sum(yields) / len(yields)) if yields else 0.0,
            )
        )
    logger.info("Yield data for user %s: %d crops", user.id, len(crops))
    return HarvestYieldRead(crops=crops)


@router.post("/", response_model=HarvestRead, status_code=status.HTTP_201_CREATED)
async def record_harvest(
    payload: HarvestCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    user_id = user.id

    async def _work():
        model = HarvestModel(
            user_id=user_id,
            crop_name=payload.crop_name,
            harvest_amount=payload.harvest_amount,
            harvest_unit=payload.harvest_unit,
            yield_percentage=payload.yield_percentage,
            harvest_date=payload.harvest_date,
            notes=payload.notes,
        )
        db.add(model)
        await db.flush()
        await apply_event(
            db,
            HarvestRecorded(user_id=user_id, crop_name=payload.crop_name, amount=payload.harvest_amount),
        )
        return model

    model = await run_storage_unit(db, _work, "record harvest")
    await db.refresh(model)
    logger.info(
        "Harvest %s recorded for user %s: %s %s of %s",
        model.id,
        user_id,
        payload.harvest_amount,
        payload.harvest_unit,
        payload.crop_name,
    )
    return HarvestRead(**model.to_schema)


@router.patch("/{harvest_id}", response_model=HarvestRead)
async def update_harvest(
    harvest_id: UUID,
    payload: HarvestUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Edit a harvest record. Storage usage booked when it was recorded is left as is."""
    model = await _get_owned_harvest(db, user.id, harvest_id)

    data = payload.model_dump(exclude_unset=True)
    for field in ("harvest_amount", "harvest_unit", "harvest_date"):
        if field in data and data[field] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} cannot be null")
    for field, value in data.items():
        setattr(model, field, value)

    await db.commit()
    await db.refresh(model)
    return HarvestRead(**model.to_schema)


@router.delete("/{harvest_id}", response_model=Dict)
async def delete_harvest(
    harvest_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Delete a harvest record. Storage usage booked when it was recorded is left as is."""
    model = await _get_owned_harvest(db, user.id, harvest_id)
    await db.delete(model)
    await db.commit()
    return {"ok": True}
