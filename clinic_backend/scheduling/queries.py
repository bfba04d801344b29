import math
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import ForbiddenError, ValidationError
from clinic_backend.core.identity import Actor
from clinic_backend.models.appointment import PENDING_STATUSES, Appointment, AppointmentStatus
from clinic_backend.models.child import Child
from clinic_backend.models.user import User
from clinic_backend.models.vaccine import Vaccine
from clinic_backend.scheduling.access import get_medical_staff, load_appointment_for_actor
from clinic_backend.scheduling.status_filters import is_completed_filter, resolve_status_filter


@dataclass
class AppointmentFilters:
    status: str | None = None
    child_id: int | None = None
    from_date: date | None = None
    to_date: date | None = None
    clinic_id: int | None = None
    parent_id: int | None = None
    medical_staff_id: int | None = None
    search: str | None = None
    page: int = 1
    limit: int | None = None


def _apply_scope(db: Session, query, actor: Actor, filters: AppointmentFilters):
    if actor.is_parent:
        return query.filter(Appointment.parent_id == actor.id)

    if actor.is_staff:
        staff = get_medical_staff(db, actor)
        return query.filter(Appointment.clinic_id == staff.clinic_id)

    if actor.is_admin:
        if filters.clinic_id is not None:
            query = query.filter(Appointment.clinic_id == filters.clinic_id)
        if filters.parent_id is not None:
            query = query.filter(Appointment.parent_id == filters.parent_id)
        if filters.medical_staff_id is not None:
            query = query.filter(Appointment.medical_staff_id == filters.medical_staff_id)
        if filters.search and filters.search.strip():
            term = f'%{filters.search.strip()}%'
            query = (
                query.outerjoin(Child, Appointment.child_id == Child.id)
                .join(User, Appointment.parent_id == User.id)
                .join(Vaccine, Appointment.vaccine_id == Vaccine.id)
                .filter(
                    or_(
                        Child.name.ilike(term),
                        User.full_name.ilike(term),
                        Vaccine.name.ilike(term),
                        Appointment.verification_code.contains(filters.search.strip()),
                    )
                )
            )
        return query

    raise ForbiddenError('Unknown user type.')


def resolve_date_window(
    actor: Actor,
    filters: AppointmentFilters,
    today: date | None = None,
) -> tuple[date | None, date | None]:
    if filters.from_date or filters.to_date:
        if filters.from_date and filters.to_date and filters.from_date > filters.to_date:
            raise ValidationError('from_date must be on or before to_date.')
        return filters.from_date, filters.to_date

    if actor.is_admin or is_completed_filter(filters.status):
        return None, None

    today = today or date.today()
    return today, today + timedelta(days=config.APPOINTMENT_WINDOW_DAYS)


def list_appointments(
    db: Session,
    actor: Actor,
    filters: AppointmentFilters | None = None,
    today: date | None = None,
) -> dict:
    filters = filters or AppointmentFilters()
    query = _apply_scope(db, db.query(Appointment), actor, filters)

    if filters.status:
        statuses = resolve_status_filter(filters.status)
        query = query.filter(Appointment.status.in_([status.value for status in statuses]))

    if filters.child_id is not None:
        query = query.filter(Appointment.child_id == filters.child_id)

    start_date, end_date = resolve_date_window(actor, filters, today)
    if start_date:
        query = query.filter(Appointment.scheduled_date >= start_date)
    if end_date:
        query = query.filter(Appointment.scheduled_date <= end_date)

    result: dict = {}
    if actor.is_admin:
        page = max(filters.page, 1)
        limit = filters.limit or config.ADMIN_PAGE_SIZE
        total = query.count()
        appointments = query.order_by(
            Appointment.scheduled_date.desc(),
            Appointment.scheduled_time.desc(),
        ).offset((page - 1) * limit).limit(limit).all()
        result['pagination'] = {
            'page': page,
            'limit': limit,
            'total': total,
            'total_pages': math.ceil(total / limit) if total else 0,
        }
    else:
        appointments = query.order_by(
            Appointment.scheduled_date.asc(),
            Appointment.scheduled_time.asc(),
        ).all()
        total = len(appointments)

    pending_values = {status.value for status in PENDING_STATUSES}
    result['statistics'] = {
        'total': total,
        'completed': sum(1 for apt in appointments if apt.status == AppointmentStatus.COMPLETED.value),
        'pending': sum(1 for apt in appointments if apt.status in pending_values),
    }
    result['appointments'] = appointments
    if start_date and end_date:
        result['date_range'] = {'from': start_date, 'to': end_date}
    return result


def get_appointment(db: Session, actor: Actor, appointment_id: int) -> Appointment:
    return load_appointment_for_actor(db, actor, appointment_id)


def get_appointment_stats(
    db: Session,
    actor: Actor,
    clinic_id: int | None = None,
    today: date | None = None,
) -> dict:
    if not actor.is_admin:
        raise ForbiddenError('Only admins can view appointment statistics.')

    base = db.query(Appointment)
    if clinic_id is not None:
        base = base.filter(Appointment.clinic_id == clinic_id)

    def count_status(status: AppointmentStatus) -> int:
        return base.filter(Appointment.status == status.value).count()

    today = today or date.today()
    scheduled = count_status(AppointmentStatus.SCHEDULED)
    confirmed = count_status(AppointmentStatus.CONFIRMED)
    return {
        'total': base.count(),
        'scheduled': scheduled,
        'confirmed': confirmed,
        'completed': count_status(AppointmentStatus.COMPLETED),
        'cancelled': count_status(AppointmentStatus.CANCELLED),
        'no_show': count_status(AppointmentStatus.NO_SHOW),
        'today_appointments': base.filter(Appointment.scheduled_date == today).count(),
        'pending': scheduled + confirmed,
    }
