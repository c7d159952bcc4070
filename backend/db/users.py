from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy.orm import relationship
from .database import Base


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"

    # Rows are removed by the ON DELETE CASCADE foreign keys
    inventory_items = relationship("InventoryItem", back_populates="user", passive_deletes=True)
    harvests = relationship("Harvest", back_populates="user", passive_deletes=True)
    storage_account = relationship("StorageAccount", back_populates="user", uselist=False, passive_deletes=True)
