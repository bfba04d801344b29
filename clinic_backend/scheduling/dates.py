"""Parsing of calendar dates and slot labels received from clients.

Clients send dates either as ISO strings (optionally with a time part, as
JavaScript's ``toISOString`` produces) or as ``DD/MM/YYYY``. Everything past
this module works with ``datetime.date`` and zero-padded ``HH:MM`` labels.
"""

import re
from datetime import date, datetime

from clinic_backend.core.errors import ValidationError

_ISO_DATE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$')
_DAY_FIRST_DATE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')
_SLOT_TIME = re.compile(r'^(\d{1,2}):(\d{2})$')


def parse_calendar_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError('Date must be a string in YYYY-MM-DD or DD/MM/YYYY format.')

    normalized = value.strip()
    iso_match = _ISO_DATE.match(normalized)
    if iso_match:
        year, month, day = iso_match.groups()
    else:
        day_first_match = _DAY_FIRST_DATE.match(normalized)
        if not day_first_match:
            raise ValidationError(f'Invalid date "{value}". Use YYYY-MM-DD or DD/MM/YYYY.')
        day, month, year = day_first_match.groups()

    try:
        return date(int(year), int(month), int(day))
    except ValueError as exc:
        raise ValidationError(f'Invalid date "{value}". {exc}.') from exc


def parse_slot_time(value) -> str:
    if not isinstance(value, str):
        raise ValidationError('Time must be a string in HH:MM format.')

    match = _SLOT_TIME.match(value.strip())
    if not match:
        raise ValidationError(f'Invalid time "{value}". Use HH:MM (24-hour).')

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f'Invalid time "{value}". Use HH:MM (24-hour).')

    return f'{hour:02d}:{minute:02d}'
