from clinic_backend.core.errors import ValidationError
from clinic_backend.models.appointment import PENDING_STATUSES, AppointmentStatus

STATUS_FILTER_ALIASES: dict[str, frozenset[AppointmentStatus]] = {
    'pending': PENDING_STATUSES,
    'upcoming': frozenset({AppointmentStatus.SCHEDULED}),
    'completed': frozenset({AppointmentStatus.COMPLETED}),
    'in_progress': frozenset({AppointmentStatus.CHECK_IN, AppointmentStatus.START_VISIT}),
    'cancelled': frozenset({AppointmentStatus.CANCELLED}),
}


def resolve_status_filter(value: str) -> frozenset[AppointmentStatus]:
    """Map a client status filter to the set of stored statuses it selects.

    Accepts the friendly aliases in ``STATUS_FILTER_ALIASES`` or any raw
    ``AppointmentStatus`` name, case-insensitively.
    """
    normalized = value.strip().lower()
    if normalized in STATUS_FILTER_ALIASES:
        return STATUS_FILTER_ALIASES[normalized]

    try:
        return frozenset({AppointmentStatus(normalized.upper())})
    except ValueError as exc:
        allowed = sorted(STATUS_FILTER_ALIASES) + [status.value for status in AppointmentStatus]
        raise ValidationError(f'Invalid status filter. Must be one of: {", ".join(allowed)}.') from exc


def is_completed_filter(value: str | None) -> bool:
    return value is not None and value.strip().lower() == 'completed'
