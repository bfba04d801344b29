"""User model definitions."""

import enum

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from clinic_backend.database import Base


class UserType(str, enum.Enum):
    PARENT = 'PARENT'
    MEDICAL_STAFF = 'MEDICAL_STAFF'
    ADMIN = 'ADMIN'


class User(Base):
    """Represents a parent, medical staff member or admin."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    full_name = Column(String)
    user_type = Column(String, nullable=False)
    clinic_id = Column(Integer, ForeignKey("clinics.id"))  # medical staff only
    is_active = Column(Boolean, nullable=False, default=True)
