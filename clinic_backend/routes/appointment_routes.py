from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_actor
from clinic_backend.core.errors import ForbiddenError
from clinic_backend.core.identity import Actor
from clinic_backend.database import get_db
from clinic_backend.routes.schemas import (
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatsResponse,
    AvailableSlotsResponse,
    BookAppointmentRequest,
    CancelAppointmentRequest,
    DateRangeResponse,
    RescheduleAppointmentRequest,
    SlotDateRangeResponse,
    to_appointment_response,
)
from clinic_backend.scheduling import booking, guards, lifecycle, queries, slots
from clinic_backend.scheduling.dates import parse_calendar_date

router = APIRouter(tags=['appointments'])


@router.get('/time-slots', response_model=AvailableSlotsResponse)
def get_available_slots(
    clinic_id: int = Query(...),
    vaccine_id: int | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    del actor
    result = slots.get_available_slots(db, clinic_id, vaccine_id=vaccine_id)
    date_range = result['date_range']
    return AvailableSlotsResponse(
        vaccination_center=result['vaccination_center'],
        vaccine_in_stock=result['vaccine_in_stock'],
        date_range=SlotDateRangeResponse(
            from_date=date_range['from'],
            to_date=date_range['to'],
            total_days=date_range['total_days'],
        ),
        slot_info=result['slot_info'],
        dates=result['dates'],
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    appointment = booking.book_appointment(
        db,
        actor,
        clinic_id=data.clinic_id,
        vaccine_id=data.vaccine_id,
        scheduled_date=data.scheduled_date,
        scheduled_time=data.scheduled_time,
        child_id=data.child_id,
        parent_id=data.parent_id,
        notes=data.notes,
    )
    return to_appointment_response(appointment, actor)


@router.get('', response_model=AppointmentListResponse)
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    child_id: int | None = Query(default=None),
    from_date: str | None = Query(default=None),
    to_date: str | None = Query(default=None),
    clinic_id: int | None = Query(default=None),
    parent_id: int | None = Query(default=None),
    medical_staff_id: int | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    filters = queries.AppointmentFilters(
        status=status_filter,
        child_id=child_id,
        from_date=parse_calendar_date(from_date) if from_date else None,
        to_date=parse_calendar_date(to_date) if to_date else None,
        clinic_id=clinic_id,
        parent_id=parent_id,
        medical_staff_id=medical_staff_id,
        search=search,
        page=page,
        limit=limit,
    )
    result = queries.list_appointments(db, actor, filters)

    date_range = result.get('date_range')
    return AppointmentListResponse(
        statistics=result['statistics'],
        appointments=[to_appointment_response(appointment, actor) for appointment in result['appointments']],
        date_range=DateRangeResponse(from_date=date_range['from'], to_date=date_range['to']) if date_range else None,
        pagination=result.get('pagination'),
    )


@router.get('/stats', response_model=AppointmentStatsResponse)
def get_appointment_stats(
    clinic_id: int | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return AppointmentStatsResponse(**queries.get_appointment_stats(db, actor, clinic_id=clinic_id))


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return to_appointment_response(queries.get_appointment(db, actor, appointment_id), actor)


@router.delete('/{appointment_id}', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    if actor.is_staff:
        raise ForbiddenError('Medical staff cancel appointments through the medical staff endpoints.')

    appointment = guards.cancel_appointment(db, actor, appointment_id, data.reason, data.notes)
    return to_appointment_response(appointment, actor)


@router.put('/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    appointment = guards.reschedule_appointment(
        db,
        actor,
        appointment_id,
        data.scheduled_date,
        data.scheduled_time,
    )
    return to_appointment_response(appointment, actor)


@router.post('/{appointment_id}/mark-complete', response_model=AppointmentResponse)
def mark_appointment_complete(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return to_appointment_response(lifecycle.acknowledge(db, actor, appointment_id), actor)


@router.delete('/{appointment_id}/delete', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    guards.delete_appointment(db, actor, appointment_id)
