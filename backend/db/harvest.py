import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Harvest(Base):
    __tablename__ = "harvests"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Resolved from the crop catalog by the caller
    crop_name = Column(String, nullable=False, index=True)
    harvest_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    harvest_unit = Column(Text, nullable=False)
    yield_percentage = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    harvest_date = Column(DateTime, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="harvests")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "crop_name": self.crop_name,
            "harvest_amount": float(self.harvest_amount),
            "harvest_unit": self.harvest_unit,
            "yield_percentage": float(self.yield_percentage) if self.yield_percentage is not None else None,
            "harvest_date": self.harvest_date,
            "notes": self.notes,
            "created_at": self.created_at,
        }
