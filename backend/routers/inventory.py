import logging
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.storage.events import (
    InventoryItemCreated,
    InventoryItemDeleted,
    InventoryItemQuantityChanged,
)
from core.storage.ledger import apply_event
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.users import User
from routers.storage import run_storage_unit
from schemas.inventory import InventoryItemCreate, InventoryItemRead, InventoryItemUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


CATEGORY_SUBCATEGORIES: Dict[str, List[str]] = {
    "fertilizer": [
        "Nitrogen Fertilizer",
        "Phosphorus Fertilizer",
        "Potassium Fertilizer",
        "Balanced Fertilizer",
        "Organic Fertilizer",
        "Compost",
        "Other",
    ],
    "seeds": [
        "Vegetable Seeds",
        "Herb Seeds",
        "Flower Seeds",
        "Fruit Seeds",
        "Root Vegetable Seeds",
        "Legume Seeds",
        "Other",
    ],
    "transplants": [
        "Vegetable Transplants",
        "Herb Transplants",
        "Flower Transplants",
        "Fruit Transplants",
        "Seedlings",
        "Other",
    ],
    "value_added_materials": ["Flower Wraps", "Boxes", "Labels", "Bags", "Baskets", "Tissue Paper", "Other"],
    "pesticides": ["Insecticides", "Fungicides", "Herbicides", "Nematicides", "Natural/Organic", "Other"],
    "tools": ["Hand Tools", "Power Tools", "Hoses & Connectors", "Pruning Equipment", "Digging Equipment", "Other"],
    "packaging": ["Crates", "Jars", "Bottles", "Containers", "Wrapping Materials", "Other"],
    "irrigation_supplies": ["Drip Lines", "Sprinkler Heads", "Valves", "Fittings", "Emitters", "Tubing", "Other"],
    "soil_amendments": ["Peat Moss", "Coco Coir", "Perlite", "Vermiculite", "Sand", "Mulch", "Other"],
    "other": ["Miscellaneous"],
}


async def _get_owned_item(
    db: AsyncSession,
    user_id: UUID,
    item_id: UUID,
    *,
    for_update: bool = False,
) -> InventoryItemModel:
    stmt = select(InventoryItemModel).where(
        InventoryItemModel.id == item_id,
        InventoryItemModel.user_id == user_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    res = await db.execute(stmt.execution_options(populate_existing=True))
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return model


@router.get("/items", response_model=List[InventoryItemRead])
async def list_inventory_items(
    category: Optional[str] = None,
    q: Optional[str] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    List the user's inventory items with their reorder status.

    - category filters on the exact category key.
    - q is a case-insensitive substring match on the name.
    """
    stmt = select(InventoryItemModel).where(InventoryItemModel.user_id == user.id)
    if category:
        stmt = stmt.where(InventoryItemModel.category == category)
    if q:
        qq = f"%{q.strip().lower()}%"
        stmt = stmt.where(func.lower(InventoryItemModel.name).like(qq))

    res = await db.execute(stmt.order_by(func.lower(InventoryItemModel.name).asc()))
    items = res.scalars().all()
    logger.info("Fetched %d inventory items for user %s", len(items), user.id)
    return [InventoryItemRead(**it.to_schema) for it in items]


@router.post("/items", response_model=InventoryItemRead, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    user_id = user.id

    async def _work():
        model = InventoryItemModel(
            user_id=user_id,
            name=payload.name,
            category=payload.category,
            subcategory=payload.subcategory,
            quantity=payload.quantity,
            unit=payload.unit,
            notes=payload.notes,
            reorder_level=payload.reorder_level,
        )
        db.add(model)
        await db.flush()
        await apply_event(
            db,
            InventoryItemCreated(user_id=user_id, category=payload.category, quantity=payload.quantity),
        )
        return model

    model = await run_storage_unit(db, _work, "create inventory item")
    await db.refresh(model)
    logger.info(
        "Inventory item %s created (%s, quantity %s) for user %s",
        model.id,
        model.category,
        payload.quantity,
        user_id,
    )
    return InventoryItemRead(**model.to_schema)


@router.patch("/items/{item_id}", response_model=InventoryItemRead)
async def update_inventory_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    user_id = user.id
    data = payload.model_dump(exclude_unset=True)
    if "quantity" in data and data["quantity"] is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="quantity cannot be null")
    for field in ("name", "unit"):
        if field in data and data[field] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} cannot be null")

    async def _work():
        # Row lock: two concurrent edits must not both book a delta from the same old quantity.
        model = await _get_owned_item(db, user_id, item_id, for_update=True)
        old_quantity = float(model.quantity or 0)

        for field, value in data.items():
            setattr(model, field, value)
        await db.flush()

        if "quantity" in data:
            await apply_event(
                db,
                InventoryItemQuantityChanged(
                    user_id=user_id,
                    category=model.category,
                    old_quantity=old_quantity,
                    new_quantity=float(data["quantity"]),
                ),
            )
        return model, old_quantity

    model, old_quantity = await run_storage_unit(db, _work, "update inventory item")
    await db.refresh(model)
    logger.info(
        "Inventory item %s updated for user %s (quantity %s -> %s)",
        item_id,
        user_id,
        old_quantity,
        model.quantity,
    )
    return InventoryItemRead(**model.to_schema)


@router.delete("/items/{item_id}", response_model=Dict)
async def delete_inventory_item(
    item_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    user_id = user.id

    async def _work():
        model = await _get_owned_item(db, user_id, item_id, for_update=True)
        category = model.category
        quantity = float(model.quantity or 0)
        await db.delete(model)
        await db.flush()
        await apply_event(db, InventoryItemDeleted(user_id=user_id, category=category, quantity=quantity))
        return quantity

    quantity = await run_storage_unit(db, _work, "delete inventory item")
    logger.info("Inventory item %s deleted for user %s (quantity %s)", item_id, user_id, quantity)
    return {"ok": True}


@router.get("/low-stock", response_model=List[InventoryItemRead])
async def list_low_stock_items(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(InventoryItemModel)
        .where(InventoryItemModel.user_id == user.id)
        .where(InventoryItemModel.reorder_level.is_not(None))
        .where(InventoryItemModel.quantity <= InventoryItemModel.reorder_level)
        .order_by(func.lower(InventoryItemModel.name).asc())
    )
    return [InventoryItemRead(**it.to_schema) for it in res.scalars().all()]


@router.get("/categories", response_model=Dict[str, List[str]])
async def list_inventory_categories():
    return CATEGORY_SUBCATEGORIES
