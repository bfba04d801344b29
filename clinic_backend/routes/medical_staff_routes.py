from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_actor
from clinic_backend.core.errors import ForbiddenError
from clinic_backend.core.identity import Actor
from clinic_backend.database import get_db
from clinic_backend.routes.schemas import (
    AppointmentResponse,
    AppointmentStatusUpdateResponse,
    CancelAppointmentRequest,
    UpdateAppointmentStatusRequest,
    to_appointment_response,
    to_record_response,
)
from clinic_backend.scheduling import guards, lifecycle

router = APIRouter(tags=['medical-staff'])


def require_staff(actor: Actor) -> None:
    if not actor.is_staff:
        raise ForbiddenError('Unauthorized. Only medical staff can update appointment status.')


@router.post('/appointments/{appointment_id}/update-status', response_model=AppointmentStatusUpdateResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    require_staff(actor)

    appointment, record = lifecycle.update_appointment_status(
        db,
        actor,
        appointment_id,
        data.status,
        verification_code=data.verification_code,
        reactions=data.reactions,
        notes=data.notes,
        batch_number=data.batch_number,
    )
    return AppointmentStatusUpdateResponse(
        appointment=to_appointment_response(appointment, actor),
        vaccination_record=to_record_response(record) if record is not None else None,
    )


@router.post('/appointments/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_clinic_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    require_staff(actor)

    appointment = guards.cancel_appointment(db, actor, appointment_id, data.reason, data.notes)
    return to_appointment_response(appointment, actor)


@router.post('/appointments/{appointment_id}/no-show', response_model=AppointmentResponse)
def mark_no_show(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    require_staff(actor)

    return to_appointment_response(lifecycle.mark_no_show(db, actor, appointment_id), actor)
