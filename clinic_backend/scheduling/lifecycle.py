"""Staff-driven visit transitions and the parent acknowledgement.

SCHEDULED -> CONFIRMED (start_visit) -> COMPLETED (check_out). ``check_in``
is accepted from older clients and leaves the status value untouched.
Completing a visit draws the doses and writes the vaccination record in one
transaction.
"""

import enum
import logging
from datetime import date, datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientInventoryError,
    InvalidStateTransitionError,
    ValidationError,
)
from clinic_backend.core.identity import Actor
from clinic_backend.models.appointment import TERMINAL_STATUSES, Appointment, AppointmentStatus
from clinic_backend.models.inventory import VaccineInventory
from clinic_backend.models.vaccination_record import VaccinationRecord
from clinic_backend.scheduling.access import load_appointment_for_actor
from clinic_backend.scheduling.inventory import (
    INSUFFICIENT_INVENTORY_MESSAGE,
    decrement_batch,
    find_batch_by_number,
    find_qualifying_batch,
    qualifying_batches,
)

logger = logging.getLogger(__name__)

DOSE_LABELS = {1: 'First', 2: 'Second', 3: 'Third', 4: 'Fourth', 5: 'Fifth'}


class StaffAction(str, enum.Enum):
    START_VISIT = 'start_visit'
    CHECK_IN = 'check_in'
    CHECK_OUT = 'check_out'


def dose_label(dose_number: int) -> str:
    return DOSE_LABELS.get(dose_number, f'Dose {dose_number}')


def validate_visit_date(appointment: Appointment, today: date | None = None) -> None:
    if not config.ENFORCE_VISIT_DATE:
        return

    today = today or date.today()
    if appointment.scheduled_date != today:
        formatted = appointment.scheduled_date.strftime('%B %d, %Y')
        raise ValidationError(
            f'This appointment is scheduled for {formatted}. You can only start visits on the scheduled date.'
        )


def _load_for_staff(db: Session, actor: Actor, appointment_id: int) -> Appointment:
    if not actor.is_staff:
        raise ForbiddenError('Unauthorized. Only medical staff can update appointment status.')
    return load_appointment_for_actor(db, actor, appointment_id)


def start_visit(db: Session, actor: Actor, appointment_id: int, today: date | None = None) -> Appointment:
    appointment = _load_for_staff(db, actor, appointment_id)
    current = appointment.status_value

    if current is AppointmentStatus.COMPLETED:
        raise InvalidStateTransitionError('Appointment already completed')
    if current is AppointmentStatus.CANCELLED:
        raise InvalidStateTransitionError('Cannot start a cancelled appointment')
    if current not in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED):
        raise InvalidStateTransitionError(f'Cannot start a visit for an appointment in status {current.value}')

    validate_visit_date(appointment, today)

    appointment.status = AppointmentStatus.CONFIRMED.value
    appointment.medical_staff_id = actor.id
    db.commit()
    db.refresh(appointment)

    logger.info('Staff %s started visit for appointment %s', actor.id, appointment.id)
    return appointment


def check_in(
    db: Session,
    actor: Actor,
    appointment_id: int,
    batch_number: str | None = None,
    today: date | None = None,
) -> Appointment:
    appointment = _load_for_staff(db, actor, appointment_id)
    current = appointment.status_value

    if current is AppointmentStatus.COMPLETED:
        raise InvalidStateTransitionError('Appointment already completed')
    if current in TERMINAL_STATUSES:
        raise InvalidStateTransitionError(f'Cannot check in an appointment in status {current.value}')

    validate_visit_date(appointment, today)

    if batch_number and batch_number.strip():
        batch = find_batch_by_number(
            db,
            appointment.clinic_id,
            appointment.vaccine,
            batch_number,
            appointment.scheduled_date,
        )
        appointment.vaccine_inventory_id = batch.id

    appointment.medical_staff_id = actor.id
    appointment.checked_in_at = datetime.now()
    db.commit()
    db.refresh(appointment)

    logger.info('Staff %s checked in appointment %s', actor.id, appointment.id)
    return appointment


def _select_batch(db: Session, appointment: Appointment, batch_number: str | None) -> VaccineInventory:
    if batch_number and batch_number.strip():
        return find_batch_by_number(
            db,
            appointment.clinic_id,
            appointment.vaccine,
            batch_number,
            appointment.scheduled_date,
        )

    if appointment.vaccine_inventory_id is not None:
        # A batch bound at check-in must still qualify on the scheduled date.
        batch = qualifying_batches(
            db,
            appointment.clinic_id,
            appointment.vaccine,
            appointment.scheduled_date,
        ).filter(VaccineInventory.id == appointment.vaccine_inventory_id).first()
        if batch is not None:
            return batch

    batch = find_qualifying_batch(db, appointment.clinic_id, appointment.vaccine, appointment.scheduled_date)
    if batch is None:
        raise InsufficientInventoryError(INSUFFICIENT_INVENTORY_MESSAGE)
    return batch


def _next_dose_number(db: Session, appointment: Appointment) -> int:
    if appointment.child_id is None:
        return 1
    prior_doses = db.query(VaccinationRecord).filter(
        VaccinationRecord.child_id == appointment.child_id,
        VaccinationRecord.vaccine_id == appointment.vaccine_id,
    ).count()
    return prior_doses + 1


def check_out(
    db: Session,
    actor: Actor,
    appointment_id: int,
    verification_code: str | None,
    reactions: str | None = None,
    notes: str | None = None,
    batch_number: str | None = None,
    today: date | None = None,
) -> tuple[Appointment, VaccinationRecord]:
    appointment = _load_for_staff(db, actor, appointment_id)
    current = appointment.status_value

    if current is AppointmentStatus.COMPLETED:
        raise ConflictError('Appointment already completed')
    if current is AppointmentStatus.CANCELLED:
        raise InvalidStateTransitionError('Cannot complete a cancelled appointment')
    if current is AppointmentStatus.NO_SHOW:
        raise InvalidStateTransitionError('Cannot complete an appointment marked as no-show')
    if current is AppointmentStatus.SCHEDULED:
        raise InvalidStateTransitionError('Visit must be started before completing vaccination')

    validate_visit_date(appointment, today)

    if not verification_code:
        raise ValidationError('Verification code is required')
    if verification_code.strip() != appointment.verification_code:
        raise ValidationError('Invalid verification code')

    vaccine = appointment.vaccine
    batch = _select_batch(db, appointment, batch_number)
    dose_number = _next_dose_number(db, appointment)
    administered_date = today or date.today()
    next_due_date = None
    if vaccine.dose_interval_days:
        next_due_date = administered_date + timedelta(days=vaccine.dose_interval_days)

    try:
        decrement_batch(db, batch, vaccine.dosage_count)

        record = VaccinationRecord(
            appointment_id=appointment.id,
            child_id=appointment.child_id,
            vaccine_id=appointment.vaccine_id,
            clinic_id=appointment.clinic_id,
            administered_by=actor.id,
            administered_date=administered_date,
            dose_number=dose_number,
            batch_number=batch.batch_number,
            next_due_date=next_due_date,
            reactions=reactions,
            notes=notes,
        )
        db.add(record)

        appointment.status = AppointmentStatus.COMPLETED.value
        appointment.medical_staff_id = actor.id
        appointment.vaccine_inventory_id = batch.id
        appointment.checked_out_at = datetime.now()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Appointment already completed') from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    db.refresh(record)

    logger.info(
        'Staff %s completed appointment %s (dose %s, batch %s)',
        actor.id,
        appointment.id,
        dose_number,
        record.batch_number,
    )
    return appointment, record


def mark_no_show(db: Session, actor: Actor, appointment_id: int) -> Appointment:
    appointment = _load_for_staff(db, actor, appointment_id)
    current = appointment.status_value

    if current in TERMINAL_STATUSES:
        raise InvalidStateTransitionError(f'Cannot mark an appointment in status {current.value} as no-show')

    appointment.status = AppointmentStatus.NO_SHOW.value
    appointment.medical_staff_id = actor.id
    db.commit()
    db.refresh(appointment)

    logger.info('Staff %s marked appointment %s as no-show', actor.id, appointment.id)
    return appointment


def update_appointment_status(
    db: Session,
    actor: Actor,
    appointment_id: int,
    action: StaffAction,
    verification_code: str | None = None,
    reactions: str | None = None,
    notes: str | None = None,
    batch_number: str | None = None,
    today: date | None = None,
) -> tuple[Appointment, VaccinationRecord | None]:
    if action is StaffAction.START_VISIT:
        return start_visit(db, actor, appointment_id, today=today), None
    if action is StaffAction.CHECK_IN:
        return check_in(db, actor, appointment_id, batch_number=batch_number, today=today), None
    if action is StaffAction.CHECK_OUT:
        return check_out(
            db,
            actor,
            appointment_id,
            verification_code,
            reactions=reactions,
            notes=notes,
            batch_number=batch_number,
            today=today,
        )
    raise ValidationError('Invalid status provided')


def acknowledge(db: Session, actor: Actor, appointment_id: int) -> Appointment:
    if not actor.is_parent:
        raise ForbiddenError('Only parents can acknowledge a completed appointment.')

    appointment = load_appointment_for_actor(db, actor, appointment_id)

    if appointment.status_value is not AppointmentStatus.COMPLETED:
        raise InvalidStateTransitionError(
            'Cannot mark as complete. Medical staff has not completed this appointment yet.'
        )
    if appointment.is_parent_acknowledged:
        raise ConflictError('Appointment already marked as complete by you')

    appointment.is_parent_acknowledged = True
    appointment.parent_acknowledged_at = datetime.now()
    db.commit()
    db.refresh(appointment)

    logger.info('Parent %s acknowledged appointment %s', actor.id, appointment.id)
    return appointment
