"""Vaccine model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from clinic_backend.database import Base


class Vaccine(Base):
    """Represents a vaccine in the catalog."""
    __tablename__ = "vaccines"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    manufacturer = Column(String)
    dosage_count = Column(Integer, nullable=False, default=1)
    dose_interval_days = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True)
