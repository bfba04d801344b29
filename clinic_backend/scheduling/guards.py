"""Cancellation, reschedule and deletion rules for appointments."""

import logging
from datetime import date

from sqlalchemy.orm import Session

from clinic_backend.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateTransitionError,
    ValidationError,
)
from clinic_backend.core.identity import Actor
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.vaccination_record import VaccinationRecord
from clinic_backend.scheduling.access import load_appointment_for_actor
from clinic_backend.scheduling.slots import (
    SlotGrid,
    commit_slot_claim,
    ensure_slot_free,
    validate_requested_slot,
)

logger = logging.getLogger(__name__)


def ensure_cancellable(appointment: Appointment) -> None:
    current = appointment.status_value
    if current is AppointmentStatus.CANCELLED:
        raise ConflictError('Appointment is already cancelled')
    if current is AppointmentStatus.COMPLETED:
        raise InvalidStateTransitionError('Cannot cancel a completed appointment')


def ensure_reschedulable(appointment: Appointment) -> None:
    current = appointment.status_value
    if current is AppointmentStatus.CANCELLED:
        raise InvalidStateTransitionError('Cannot reschedule a cancelled appointment')
    if current is AppointmentStatus.COMPLETED:
        raise InvalidStateTransitionError('Cannot reschedule a completed appointment')


def cancel_appointment(
    db: Session,
    actor: Actor,
    appointment_id: int,
    reason: str | None,
    notes: str | None = None,
) -> Appointment:
    normalized_reason = (reason or '').strip()
    if not normalized_reason:
        raise ValidationError('Cancellation reason is required.')

    appointment = load_appointment_for_actor(db, actor, appointment_id)
    ensure_cancellable(appointment)

    appointment.status = AppointmentStatus.CANCELLED.value
    appointment.cancellation_reason = normalized_reason
    if notes:
        appointment.notes = notes
    db.commit()
    db.refresh(appointment)

    logger.info('%s %s cancelled appointment %s', actor.user_type.value, actor.id, appointment.id)
    return appointment


def reschedule_appointment(
    db: Session,
    actor: Actor,
    appointment_id: int,
    scheduled_date: date,
    scheduled_time: str,
    today: date | None = None,
    grid: SlotGrid | None = None,
) -> Appointment:
    if not (actor.is_parent or actor.is_admin):
        raise ForbiddenError('Only parents and admins can reschedule appointments.')

    appointment = load_appointment_for_actor(db, actor, appointment_id)
    ensure_reschedulable(appointment)
    validate_requested_slot(scheduled_date, scheduled_time, today=today, grid=grid)
    ensure_slot_free(
        db,
        appointment.clinic_id,
        scheduled_date,
        scheduled_time,
        exclude_appointment_id=appointment.id,
    )

    appointment.scheduled_date = scheduled_date
    appointment.scheduled_time = scheduled_time
    appointment.status = AppointmentStatus.SCHEDULED.value
    appointment.vaccine_inventory_id = None
    appointment.medical_staff_id = None
    appointment.checked_in_at = None
    commit_slot_claim(db)
    db.refresh(appointment)

    logger.info(
        'Rescheduled appointment %s to %s %s',
        appointment.id,
        scheduled_date.isoformat(),
        scheduled_time,
    )
    return appointment


def delete_appointment(db: Session, actor: Actor, appointment_id: int) -> None:
    if not actor.is_admin:
        raise ForbiddenError('Only admins can delete appointments.')

    appointment = load_appointment_for_actor(db, actor, appointment_id)

    has_record = db.query(VaccinationRecord.id).filter(
        VaccinationRecord.appointment_id == appointment.id,
    ).first()
    if has_record:
        raise InvalidStateTransitionError('Cannot delete appointment with vaccination record. Cancel it instead.')

    db.delete(appointment)
    db.commit()

    logger.info('Admin %s deleted appointment %s', actor.id, appointment_id)
