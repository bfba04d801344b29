"""Clinic model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from clinic_backend.database import Base


class Clinic(Base):
    """Represents a vaccination center."""
    __tablename__ = "clinics"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    address = Column(String)
    phone = Column(String)
    is_active = Column(Boolean, nullable=False, default=True)
