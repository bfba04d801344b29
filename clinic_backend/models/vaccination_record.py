"""Vaccination record model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from clinic_backend.database import Base


class VaccinationRecord(Base):
    """Represents a dose administered at a completed appointment."""
    __tablename__ = "vaccination_records"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(
        Integer,
        ForeignKey("appointments.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
    )
    child_id = Column(Integer, ForeignKey("children.id"))
    vaccine_id = Column(Integer, ForeignKey("vaccines.id"), nullable=False)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    administered_by = Column(Integer, ForeignKey("users.id"))
    administered_date = Column(Date, nullable=False)
    dose_number = Column(Integer, nullable=False)
    batch_number = Column(String)
    next_due_date = Column(Date)
    reactions = Column(String)
    notes = Column(String)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    appointment = relationship("Appointment", back_populates="vaccination_record")
