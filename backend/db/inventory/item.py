import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False)
    # 'fertilizer' | 'seeds' | 'transplants' | ... (see schemas.inventory.InventoryCategory)
    category = Column(Text, nullable=False, index=True)
    subcategory = Column(Text, nullable=True)

    quantity = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    unit = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    reorder_level = Column(Numeric(12, 2, asdecimal=False), nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="inventory_items")

    @property
    def needs_reorder(self) -> bool:
        if self.reorder_level is None:
            return False
        return float(self.quantity or 0) <= float(self.reorder_level)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "subcategory": self.subcategory,
            "quantity": float(self.quantity or 0),
            "unit": self.unit,
            "notes": self.notes,
            "reorder_level": float(self.reorder_level) if self.reorder_level is not None else None,
            "needs_reorder": self.needs_reorder,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
