# Import every model so Base.metadata and string relationships resolve
# no matter which db module is imported first.
from .database import Base  # noqa: F401
from .users import User  # noqa: F401
from .storage import StorageAccount  # noqa: F401
from .harvest import Harvest  # noqa: F401
from .inventory.item import InventoryItem  # noqa: F401
