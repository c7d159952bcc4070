from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


InventoryCategory = Literal[
    "fertilizer",
    "seeds",
    "transplants",
    "value_added_materials",
    "pesticides",
    "tools",
    "packaging",
    "irrigation_supplies",
    "soil_amendments",
    "other",
]


class InventoryItemCreate(BaseModel):
    name: str
    category: InventoryCategory
    subcategory: Optional[str] = None
    quantity: float
    unit: str
    notes: Optional[str] = None
    reorder_level: Optional[float] = None

    @field_validator("name", "unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("subcategory", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("quantity")
    @classmethod
    def _quantity_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("quantity must be >= 0")
        # stored as NUMERIC(12, 2)
        return round(v, 2)

    @field_validator("reorder_level")
    @classmethod
    def _reorder_level_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("reorder_level must be >= 0")
        return round(v, 2) if v is not None else None


class InventoryItemUpdate(BaseModel):
    """Partial update. Category cannot change: storage deltas are booked against the original class."""
    name: Optional[str] = None
    subcategory: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None
    reorder_level: Optional[float] = None

    @field_validator("name", "unit")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = (v or "").strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("subcategory", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("quantity", "reorder_level")
    @classmethod
    def _non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("must be >= 0")
        return round(v, 2) if v is not None else None


class InventoryItemRead(BaseModel):
    id: UUID
    name: str
    category: str
    subcategory: Optional[str] = None
    quantity: float
    unit: str
    notes: Optional[str] = None
    reorder_level: Optional[float] = None
    needs_reorder: bool
    created_at: datetime
    updated_at: datetime
