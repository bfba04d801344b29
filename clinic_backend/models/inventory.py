"""Vaccine inventory model definitions."""

from sqlalchemy import Column, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from clinic_backend.database import Base


class VaccineInventory(Base):
    """Represents one batch of a vaccine held at a clinic."""
    __tablename__ = "vaccine_inventory"
    __table_args__ = (
        UniqueConstraint("clinic_id", "vaccine_id", "batch_number", name="uq_inventory_batch"),
        Index("idx_inventory_clinic_vaccine_expiry", "clinic_id", "vaccine_id", "expiry_date"),
    )

    id = Column(Integer, primary_key=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    vaccine_id = Column(Integer, ForeignKey("vaccines.id"), nullable=False)
    batch_number = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    remaining_doses = Column(Integer, nullable=False, default=0)
    expiry_date = Column(Date, nullable=False)
