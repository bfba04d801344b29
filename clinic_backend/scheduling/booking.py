"""Booking of new appointments.

A booking goes through, in order: owner resolution, slot request checks,
clinic / vaccine / slot validation, the inventory check, and finally the
insert. The insert is committed through ``commit_slot_claim`` so the active
slot index settles any race the application-level check missed.
"""

import logging
import secrets
from datetime import date

from sqlalchemy.orm import Session

from clinic_backend.core.errors import ForbiddenError, NotFoundError, ValidationError
from clinic_backend.core.identity import Actor
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.child import Child
from clinic_backend.models.clinic import Clinic
from clinic_backend.models.user import User, UserType
from clinic_backend.models.vaccine import Vaccine
from clinic_backend.scheduling.inventory import ensure_inventory_available
from clinic_backend.scheduling.slots import (
    SlotGrid,
    commit_slot_claim,
    ensure_slot_free,
    validate_requested_slot,
)

logger = logging.getLogger(__name__)


def generate_verification_code() -> str:
    return str(1000 + secrets.randbelow(9000))


def resolve_owner(db: Session, actor: Actor, child_id: int | None, parent_id: int | None) -> int:
    """Return the parent id that will own the appointment."""
    if actor.is_admin:
        if parent_id is None:
            raise ValidationError('Parent ID is required for admin')
        parent = db.query(User).filter(
            User.id == parent_id,
            User.user_type == UserType.PARENT.value,
        ).first()
        if not parent:
            raise NotFoundError('Parent not found')

        if child_id is not None:
            child = db.query(Child).filter(Child.id == child_id, Child.is_active.is_(True)).first()
            if not child:
                raise NotFoundError('Child not found')
        return parent_id

    if not actor.is_parent:
        raise ForbiddenError('Only parents and admins can book appointments.')

    if child_id is not None:
        child = db.query(Child).filter(
            Child.id == child_id,
            Child.parent_id == actor.id,
            Child.is_active.is_(True),
        ).first()
        if not child:
            raise NotFoundError('Child not found or does not belong to you')
    return actor.id


def get_active_clinic(db: Session, clinic_id: int) -> Clinic:
    clinic = db.query(Clinic).filter(Clinic.id == clinic_id, Clinic.is_active.is_(True)).first()
    if not clinic:
        raise NotFoundError('Vaccination center not found or inactive')
    return clinic


def get_active_vaccine(db: Session, vaccine_id: int) -> Vaccine:
    vaccine = db.query(Vaccine).filter(Vaccine.id == vaccine_id, Vaccine.is_active.is_(True)).first()
    if not vaccine:
        raise NotFoundError('Vaccine not found or inactive')
    return vaccine


def book_appointment(
    db: Session,
    actor: Actor,
    *,
    clinic_id: int,
    vaccine_id: int,
    scheduled_date: date,
    scheduled_time: str,
    child_id: int | None = None,
    parent_id: int | None = None,
    notes: str | None = None,
    today: date | None = None,
    grid: SlotGrid | None = None,
) -> Appointment:
    owner_id = resolve_owner(db, actor, child_id, parent_id)
    validate_requested_slot(scheduled_date, scheduled_time, today=today, grid=grid)

    get_active_clinic(db, clinic_id)
    vaccine = get_active_vaccine(db, vaccine_id)
    ensure_slot_free(db, clinic_id, scheduled_date, scheduled_time)

    ensure_inventory_available(db, clinic_id, vaccine, scheduled_date)

    appointment = Appointment(
        child_id=child_id,
        parent_id=owner_id,
        clinic_id=clinic_id,
        vaccine_id=vaccine_id,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        status=AppointmentStatus.SCHEDULED.value,
        verification_code=generate_verification_code(),
        notes=notes,
    )
    db.add(appointment)
    commit_slot_claim(db)
    db.refresh(appointment)

    logger.info(
        'Booked appointment %s at clinic %s on %s %s for parent %s',
        appointment.id,
        clinic_id,
        scheduled_date.isoformat(),
        scheduled_time,
        owner_id,
    )
    return appointment
