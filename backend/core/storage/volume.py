from enum import Enum
from typing import Optional, Union


class VolumeOrigin(str, Enum):
    INVENTORY = "inventory"
    HARVEST = "harvest"


# Volume units per unit of quantity. The declared unit (lbs, kg, box, ...) is ignored.
INVENTORY_VOLUME_PER_UNIT = 0.1
HARVEST_VOLUME_PER_UNIT = 0.05

VOLUME_PER_UNIT = {
    VolumeOrigin.INVENTORY: INVENTORY_VOLUME_PER_UNIT,
    VolumeOrigin.HARVEST: HARVEST_VOLUME_PER_UNIT,
}

VOLUME_PRECISION = 6


def round_volume(value: float) -> float:
    # + 0.0 turns -0.0 into 0.0
    return round(float(value), VOLUME_PRECISION) + 0.0


def volume_for(quantity: Optional[Union[int, float]], origin: VolumeOrigin) -> float:
    if quantity is None:
        return 0.0
    return round_volume(float(quantity) * VOLUME_PER_UNIT[VolumeOrigin(origin)])
