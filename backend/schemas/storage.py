from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from schemas.inventory import InventoryItemRead


class StorageRead(BaseModel):
    cold_capacity: float
    cold_used: float
    dry_capacity: float
    dry_used: float
    cold_percentage: float
    dry_percentage: float


class StorageUpdate(BaseModel):
    cold_capacity: Optional[float] = Field(default=None, ge=0)
    cold_used: Optional[float] = Field(default=None, ge=0)
    dry_capacity: Optional[float] = Field(default=None, ge=0)
    dry_used: Optional[float] = Field(default=None, ge=0)


class RecalculationRead(BaseModel):
    cold_used: float
    dry_used: float
    previous_cold_used: float
    previous_dry_used: float
    item_count: int


class StorageAlertRead(BaseModel):
    storage_class: Literal["cold", "dry"]
    percentage: float
    severity: Literal["medium", "high"]
    message: str


class InventoryAlertsRead(BaseModel):
    low_stock_items: List[InventoryItemRead]
    storage_alerts: List[StorageAlertRead]
