"""Mutation events emitted by the inventory and harvest routers."""

from dataclasses import dataclass
from typing import Union
from uuid import UUID


@dataclass(frozen=True)
class InventoryItemCreated:
    user_id: UUID
    category: str
    quantity: float


@dataclass(frozen=True)
class InventoryItemQuantityChanged:
    user_id: UUID
    category: str
    old_quantity: float
    new_quantity: float


@dataclass(frozen=True)
class InventoryItemDeleted:
    user_id: UUID
    category: str
    quantity: float


@dataclass(frozen=True)
class HarvestRecorded:
    user_id: UUID
    crop_name: str
    amount: float


StorageEvent = Union[
    InventoryItemCreated,
    InventoryItemQuantityChanged,
    InventoryItemDeleted,
    HarvestRecorded,
]
