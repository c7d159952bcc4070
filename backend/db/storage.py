from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class StorageAccount(Base):
    """Per-user cold/dry storage capacity and usage, in volume units.

    A capacity of 0 means the class is untracked, not full.
    """
    __tablename__ = "storage_accounts"

    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    cold_capacity = Column(Float, nullable=False, default=0.0)
    cold_used = Column(Float, nullable=False, default=0.0)
    dry_capacity = Column(Float, nullable=False, default=0.0)
    dry_used = Column(Float, nullable=False, default=0.0)

    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="storage_account")

    __mapper_args__ = {"version_id_col": version}

    @property
    def to_schema(self):
        return {
            "cold_capacity": float(self.cold_capacity or 0),
            "cold_used": float(self.cold_used or 0),
            "dry_capacity": float(self.dry_capacity or 0),
            "dry_used": float(self.dry_used or 0),
        }
