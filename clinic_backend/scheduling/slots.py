"""Slot availability for a clinic over the rolling booking horizon."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_backend.models.appointment import ACTIVE_SLOT_STATUSES, Appointment
from clinic_backend.models.clinic import Clinic
from clinic_backend.models.vaccine import Vaccine
from clinic_backend.scheduling.inventory import find_qualifying_batch

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = 'This time slot is already booked. Please select another time.'
DAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


@dataclass(frozen=True)
class SlotGrid:
    start_hour: int
    end_hour: int
    slot_duration_minutes: int

    @classmethod
    def from_config(cls) -> 'SlotGrid':
        return cls(
            start_hour=config.SLOT_START_HOUR,
            end_hour=config.SLOT_END_HOUR,
            slot_duration_minutes=config.SLOT_DURATION_MINUTES,
        )


def build_time_grid(grid: SlotGrid) -> list[str]:
    slots: list[str] = []
    for hour in range(grid.start_hour, grid.end_hour):
        for minute in range(0, 60, grid.slot_duration_minutes):
            slots.append(f'{hour:02d}:{minute:02d}')
    return slots


def is_on_grid(slot_time: str, grid: SlotGrid) -> bool:
    return slot_time in build_time_grid(grid)


def build_day_slots(day: date, time_grid: list[str], taken_times: set[str]) -> dict:
    slots = [{'time': slot_time, 'is_available': slot_time not in taken_times} for slot_time in time_grid]
    return {
        'date': day,
        'day_name': DAY_NAMES[day.weekday()],
        'slots': slots,
        'available_count': sum(1 for slot in slots if slot['is_available']),
        'total_count': len(time_grid),
    }


def active_slot_statuses() -> list[str]:
    return [status.value for status in ACTIVE_SLOT_STATUSES]


def get_taken_slots(db: Session, clinic_id: int, start: date, end: date) -> dict[date, set[str]]:
    rows = db.query(Appointment.scheduled_date, Appointment.scheduled_time).filter(
        Appointment.clinic_id == clinic_id,
        Appointment.scheduled_date >= start,
        Appointment.scheduled_date <= end,
        Appointment.status.in_(active_slot_statuses()),
    ).all()

    taken: dict[date, set[str]] = {}
    for scheduled_date, scheduled_time in rows:
        taken.setdefault(scheduled_date, set()).add(scheduled_time)
    return taken


def find_slot_holder(
    db: Session,
    clinic_id: int,
    scheduled_date: date,
    scheduled_time: str,
    exclude_appointment_id: int | None = None,
) -> Appointment | None:
    query = db.query(Appointment).filter(
        Appointment.clinic_id == clinic_id,
        Appointment.scheduled_date == scheduled_date,
        Appointment.scheduled_time == scheduled_time,
        Appointment.status.in_(active_slot_statuses()),
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.first()


def ensure_slot_free(
    db: Session,
    clinic_id: int,
    scheduled_date: date,
    scheduled_time: str,
    exclude_appointment_id: int | None = None,
) -> None:
    if find_slot_holder(db, clinic_id, scheduled_date, scheduled_time, exclude_appointment_id):
        raise ConflictError(SLOT_TAKEN_MESSAGE)


def validate_requested_slot(
    scheduled_date: date,
    scheduled_time: str,
    today: date | None = None,
    grid: SlotGrid | None = None,
) -> None:
    today = today or date.today()
    grid = grid or SlotGrid.from_config()

    if scheduled_date < today:
        raise ValidationError('Appointment date cannot be in the past.')

    if not is_on_grid(scheduled_time, grid):
        raise ValidationError(
            f'Appointments start every {grid.slot_duration_minutes} minutes between '
            f'{grid.start_hour:02d}:00 and {grid.end_hour:02d}:00.'
        )


def commit_slot_claim(db: Session) -> None:
    """Commit a pending insert/update that claims a slot.

    The partial unique index on active slots is the final arbiter when two
    requests pass ``ensure_slot_free`` at the same time.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning('Slot claim rejected by unique index: %s', exc.orig)
        raise ConflictError(SLOT_TAKEN_MESSAGE) from exc


def get_available_slots(
    db: Session,
    clinic_id: int,
    vaccine_id: int | None = None,
    today: date | None = None,
    grid: SlotGrid | None = None,
    horizon_days: int | None = None,
) -> dict:
    clinic = db.query(Clinic).filter(Clinic.id == clinic_id).first()
    if not clinic:
        raise NotFoundError('Vaccination center not found')

    today = today or date.today()
    grid = grid or SlotGrid.from_config()
    horizon_days = config.SLOT_HORIZON_DAYS if horizon_days is None else horizon_days
    range_end = today + timedelta(days=horizon_days)

    vaccine_in_stock = None
    if vaccine_id is not None:
        vaccine = db.query(Vaccine).filter(Vaccine.id == vaccine_id).first()
        if not vaccine:
            raise NotFoundError('Vaccine not found')
        vaccine_in_stock = find_qualifying_batch(db, clinic_id, vaccine, today) is not None

    time_grid = build_time_grid(grid)
    taken = get_taken_slots(db, clinic_id, today, range_end)

    days = []
    current_day = today
    while current_day <= range_end:
        days.append(build_day_slots(current_day, time_grid, taken.get(current_day, set())))
        current_day += timedelta(days=1)

    return {
        'vaccination_center': {'id': clinic.id, 'name': clinic.name},
        'vaccine_in_stock': vaccine_in_stock,
        'date_range': {'from': today, 'to': range_end, 'total_days': len(days)},
        'slot_info': {
            'start_time': f'{grid.start_hour:02d}:00',
            'end_time': f'{grid.end_hour:02d}:00',
            'slot_duration': grid.slot_duration_minutes,
            'slots_per_day': len(time_grid),
        },
        'dates': days,
    }
