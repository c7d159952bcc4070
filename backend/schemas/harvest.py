from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


class HarvestCreate(BaseModel):
    crop_name: str
    harvest_amount: float
    harvest_unit: str
    yield_percentage: Optional[float] = None
    harvest_date: datetime
    notes: Optional[str] = None

    @field_validator("crop_name", "harvest_unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("harvest_amount")
    @classmethod
    def _amount_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("harvest_amount must be > 0")
        return round(v, 2)


class HarvestUpdate(BaseModel):
    harvest_amount: Optional[float] = None
    harvest_unit: Optional[str] = None
    yield_percentage: Optional[float] = None
    harvest_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("harvest_amount")
    @classmethod
    def _amount_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("harvest_amount must be > 0")
        return round(v, 2) if v is not None else None


class HarvestRead(BaseModel):
    id: UUID
    crop_name: str
    harvest_amount: float
    harvest_unit: str
    yield_percentage: Optional[float] = None
    harvest_date: datetime
    notes: Optional[str] = None
    created_at: datetime


class CropYieldRead(BaseModel):
    crop_name: str
    total_harvest: float
    harvest_unit: str
    harvest_count: int
    average_yield: float


class HarvestYieldRead(BaseModel):
    crops: List[CropYieldRead]
