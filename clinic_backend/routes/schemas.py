from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from clinic_backend.core import config
from clinic_backend.core.errors import ValidationError
from clinic_backend.core.identity import Actor
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.scheduling.dates import parse_calendar_date, parse_slot_time
from clinic_backend.scheduling.lifecycle import StaffAction, dose_label


def _boundary_date(value):
    try:
        return parse_calendar_date(value)
    except ValidationError as exc:
        raise ValueError(exc.detail) from exc


def _boundary_time(value):
    try:
        return parse_slot_time(value)
    except ValidationError as exc:
        raise ValueError(exc.detail) from exc


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_NOTES_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_NOTES_LENGTH} characters or fewer.')

    return normalized


class SlotRequest(BaseModel):
    scheduled_date: date
    scheduled_time: str

    @field_validator('scheduled_date', mode='before')
    @classmethod
    def validate_scheduled_date(cls, value):
        return _boundary_date(value)

    @field_validator('scheduled_time', mode='before')
    @classmethod
    def validate_scheduled_time(cls, value):
        return _boundary_time(value)


class BookAppointmentRequest(SlotRequest):
    child_id: int | None = None
    parent_id: int | None = None
    clinic_id: int
    vaccine_id: int
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _optional_text(value)


class RescheduleAppointmentRequest(SlotRequest):
    pass


class CancelAppointmentRequest(BaseModel):
    reason: str = ''
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _optional_text(value)


class UpdateAppointmentStatusRequest(BaseModel):
    status: StaffAction
    verification_code: str | None = None
    reactions: str | None = None
    notes: str | None = None
    batch_number: str | None = None

    @field_validator('verification_code')
    @classmethod
    def validate_verification_code(cls, value: str | None) -> str | None:
        if value is None:
            return None
        # Format mismatches are rejected with the same error as a wrong code.
        return value.strip() or None

    @field_validator('reactions', 'notes')
    @classmethod
    def validate_free_text(cls, value: str | None) -> str | None:
        return _optional_text(value)


class ChildSummary(BaseModel):
    id: int
    name: str | None = None
    date_of_birth: date | None = None

    class Config:
        from_attributes = True


class ClinicSummary(BaseModel):
    id: int
    name: str
    address: str | None = None
    phone: str | None = None

    class Config:
        from_attributes = True


class VaccineSummary(BaseModel):
    id: int
    name: str
    manufacturer: str | None = None
    dosage_count: int

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: int
    child_id: int | None = None
    parent_id: int
    clinic_id: int
    vaccine_id: int
    medical_staff_id: int | None = None
    scheduled_date: date
    scheduled_time: str
    status: AppointmentStatus
    verification_code: str | None = None
    cancellation_reason: str | None = None
    notes: str | None = None
    checked_in_at: datetime | None = None
    checked_out_at: datetime | None = None
    is_parent_acknowledged: bool
    parent_acknowledged_at: datetime | None = None
    child: ChildSummary | None = None
    clinic: ClinicSummary
    vaccine: VaccineSummary

    class Config:
        from_attributes = True


class VaccinationRecordResponse(BaseModel):
    id: int
    appointment_id: int
    child_id: int | None = None
    vaccine_id: int
    clinic_id: int
    administered_by: int | None = None
    administered_date: date
    dose_number: int
    dose_label: str = ''
    batch_number: str | None = None
    next_due_date: date | None = None
    reactions: str | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class AppointmentStatusUpdateResponse(BaseModel):
    appointment: AppointmentResponse
    vaccination_record: VaccinationRecordResponse | None = None


class DateRangeResponse(BaseModel):
    from_date: date = Field(serialization_alias='from')
    to_date: date = Field(serialization_alias='to')


class AppointmentStatisticsResponse(BaseModel):
    total: int
    completed: int
    pending: int


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AppointmentListResponse(BaseModel):
    statistics: AppointmentStatisticsResponse
    appointments: list[AppointmentResponse]
    date_range: DateRangeResponse | None = None
    pagination: PaginationResponse | None = None


class AppointmentStatsResponse(BaseModel):
    total: int
    scheduled: int
    confirmed: int
    completed: int
    cancelled: int
    no_show: int
    today_appointments: int
    pending: int


class SlotResponse(BaseModel):
    time: str
    is_available: bool


class DaySlotsResponse(BaseModel):
    date: date
    day_name: str
    slots: list[SlotResponse]
    available_count: int
    total_count: int


class SlotInfoResponse(BaseModel):
    start_time: str
    end_time: str
    slot_duration: int
    slots_per_day: int


class SlotDateRangeResponse(DateRangeResponse):
    total_days: int


class VaccinationCenterSummary(BaseModel):
    id: int
    name: str


class AvailableSlotsResponse(BaseModel):
    vaccination_center: VaccinationCenterSummary
    vaccine_in_stock: bool | None = None
    date_range: SlotDateRangeResponse
    slot_info: SlotInfoResponse
    dates: list[DaySlotsResponse]


def to_appointment_response(appointment: Appointment, actor: Actor) -> AppointmentResponse:
    response = AppointmentResponse.model_validate(appointment)
    if actor.is_staff:
        # Staff must hear the code from the parent at the visit.
        response.verification_code = None
    return response


def to_record_response(record) -> VaccinationRecordResponse:
    response = VaccinationRecordResponse.model_validate(record)
    response.dose_label = dose_label(record.dose_number)
    return response
