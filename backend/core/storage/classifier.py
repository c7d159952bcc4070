from enum import Enum
from typing import Iterable, Optional


class StorageClass(str, Enum):
    COLD = "cold"
    DRY = "dry"


COLD_CATEGORIES = frozenset({"seeds", "transplants"})

# Coarse heuristic, not a perishability database.
COLD_CHAIN_CROPS = ("tomato", "pepper", "lettuce", "carrot", "strawberry", "apple", "grape")


class StorageClassifier:
    """Maps inventory categories and harvested crop names to a storage class.

    Anything not recognised falls back to DRY.
    """

    def __init__(
        self,
        cold_categories: Iterable[str] = COLD_CATEGORIES,
        cold_chain_crops: Iterable[str] = COLD_CHAIN_CROPS,
    ):
        self.cold_categories = frozenset(c.strip().lower() for c in cold_categories)
        self.cold_chain_crops = tuple(c.strip().lower() for c in cold_chain_crops if c and c.strip())

    def for_category(self, category: Optional[str]) -> StorageClass:
        key = (category or "").strip().lower()
        return StorageClass.COLD if key in self.cold_categories else StorageClass.DRY

    def for_crop(self, crop_name: Optional[str]) -> StorageClass:
        name = (crop_name or "").strip().lower()
        if name and any(crop in name for crop in self.cold_chain_crops):
            return StorageClass.COLD
        return StorageClass.DRY


default_classifier = StorageClassifier()
