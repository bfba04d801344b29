from sqlalchemy.orm import Session

from clinic_backend.core.errors import ForbiddenError, NotFoundError
from clinic_backend.core.identity import Actor
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.user import User, UserType


def get_medical_staff(db: Session, actor: Actor) -> User:
    if not actor.is_staff:
        raise ForbiddenError('Only medical staff can perform this action.')

    staff = db.query(User).filter(
        User.id == actor.id,
        User.user_type == UserType.MEDICAL_STAFF.value,
        User.is_active.is_(True),
    ).first()
    if not staff:
        raise NotFoundError('Medical staff not found')
    return staff


def load_appointment_for_actor(db: Session, actor: Actor, appointment_id: int) -> Appointment:
    """Fetch an appointment the actor is allowed to act on.

    Parents only see their own appointments, so anyone else's reads as
    missing. Staff see their clinic's appointments and get a 403 for others.
    """
    query = db.query(Appointment).filter(Appointment.id == appointment_id)
    if actor.is_parent:
        query = query.filter(Appointment.parent_id == actor.id)

    appointment = query.first()
    if not appointment:
        raise NotFoundError('Appointment not found')

    if actor.is_staff:
        staff = get_medical_staff(db, actor)
        if appointment.clinic_id != staff.clinic_id:
            raise ForbiddenError('This appointment is not at your vaccination center')

    return appointment
