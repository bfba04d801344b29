"""Appointment model definitions."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
from clinic_backend.database import ACTIVE_SLOT_INDEX_NAME, Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = 'SCHEDULED'
    CONFIRMED = 'CONFIRMED'
    CHECK_IN = 'CHECK_IN'
    START_VISIT = 'START_VISIT'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    NO_SHOW = 'NO_SHOW'


# Statuses that hold a clinic slot; at most one appointment per slot may carry one.
ACTIVE_SLOT_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})
PENDING_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.CHECK_IN,
    AppointmentStatus.START_VISIT,
})
TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})

_ACTIVE_SLOT_PREDICATE = text("status IN ('SCHEDULED', 'CONFIRMED')")


class Appointment(Base):
    """Represents a booked vaccination visit."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            ACTIVE_SLOT_INDEX_NAME,
            "clinic_id",
            "scheduled_date",
            "scheduled_time",
            unique=True,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    id = Column(Integer, primary_key=True)
    child_id = Column(Integer, ForeignKey("children.id"))
    parent_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    vaccine_id = Column(Integer, ForeignKey("vaccines.id"), nullable=False)
    medical_staff_id = Column(Integer, ForeignKey("users.id"))
    vaccine_inventory_id = Column(Integer, ForeignKey("vaccine_inventory.id"))
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String(5), nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.SCHEDULED.value)
    verification_code = Column(String(4), nullable=False)
    cancellation_reason = Column(String)
    notes = Column(String)
    checked_in_at = Column(DateTime)
    checked_out_at = Column(DateTime)
    is_parent_acknowledged = Column(Boolean, nullable=False, default=False)
    parent_acknowledged_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    child = relationship("Child")
    parent = relationship("User", foreign_keys=[parent_id])
    medical_staff = relationship("User", foreign_keys=[medical_staff_id])
    clinic = relationship("Clinic")
    vaccine = relationship("Vaccine")
    vaccine_inventory = relationship("VaccineInventory")
    vaccination_record = relationship("VaccinationRecord", back_populates="appointment", uselist=False)

    @property
    def status_value(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)


# Targets of the string relationships above must be mapped before first use.
from clinic_backend.models import (  # noqa: E402,F401
    child,
    clinic,
    inventory,
    user,
    vaccination_record,
    vaccine,
)
