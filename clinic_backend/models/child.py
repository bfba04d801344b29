"""Child model definitions."""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String
from clinic_backend.database import Base


class Child(Base):
    """Represents a child profile owned by a parent."""
    __tablename__ = "children"

    id = Column(Integer, primary_key=True)
    parent_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String)
    date_of_birth = Column(Date)
    is_active = Column(Boolean, nullable=False, default=True)
