from datetime import date, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.scheduling import booking
from clinic_backend.scheduling.booking import book_appointment, generate_verification_code

DAY = date.today() + timedelta(days=7)


def _book(db, seeded, actor=None, **overrides) -> Appointment:
    params = {
        'clinic_id': seeded.clinic.id,
        'vaccine_id': seeded.vaccine.id,
        'scheduled_date': DAY,
        'scheduled_time': '09:00',
        'child_id': seeded.child.id,
    }
    params.update(overrides)
    return book_appointment(db, actor or seeded.parent_actor, **params)


def test_generate_verification_code_is_four_digits() -> None:
    for _ in range(50):
        code = generate_verification_code()
        assert len(code) == 4
        assert code.isdigit()
        assert 1000 <= int(code) <= 9999


def test_parent_books_scheduled_appointment_with_code(clinic_db, seeded) -> None:
    appointment = _book(clinic_db, seeded, notes='First visit')

    assert appointment.id is not None
    assert appointment.status == AppointmentStatus.SCHEDULED.value
    assert appointment.parent_id == seeded.parent.id
    assert appointment.child.name == 'Mira'
    assert appointment.clinic.name == 'Central Clinic'
    assert appointment.vaccine.name == 'BCG'
    assert len(appointment.verification_code) == 4
    assert appointment.notes == 'First visit'
    assert appointment.is_parent_acknowledged is False


def test_booking_does_not_touch_inventory(clinic_db, seeded) -> None:
    _book(clinic_db, seeded)
    clinic_db.refresh(seeded.batch)

    assert seeded.batch.remaining_doses == 10


def test_parent_can_book_without_child_profile(clinic_db, seeded) -> None:
    appointment = _book(clinic_db, seeded, child_id=None)

    assert appointment.child_id is None
    assert appointment.child is None


def test_parent_cannot_book_for_someone_elses_child(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, child_id=seeded.other_child.id)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Child not found or does not belong to you'


def test_parent_cannot_book_for_inactive_child(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, child_id=seeded.inactive_child.id)

    assert exception_info.value.status_code == 404


def test_admin_must_name_the_parent(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, actor=seeded.admin_actor)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Parent ID is required for admin'


def test_admin_books_for_any_child_without_ownership_check(clinic_db, seeded) -> None:
    appointment = _book(
        clinic_db,
        seeded,
        actor=seeded.admin_actor,
        parent_id=seeded.parent.id,
        child_id=seeded.other_child.id,
    )

    assert appointment.parent_id == seeded.parent.id
    assert appointment.child_id == seeded.other_child.id


def test_admin_booking_requires_existing_parent(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, actor=seeded.admin_actor, parent_id=seeded.staff.id)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Parent not found'


def test_staff_cannot_book(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, actor=seeded.staff_actor)

    assert exception_info.value.status_code == 403


@pytest.mark.parametrize(
    ('overrides', 'detail'),
    [
        ({'clinic_id': 999}, 'Vaccination center not found or inactive'),
        ({'vaccine_id': 999}, 'Vaccine not found or inactive'),
    ],
)
def test_missing_reference_data_is_not_found(clinic_db, seeded, overrides: dict, detail: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, **overrides)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == detail


def test_inactive_clinic_and_vaccine_are_not_bookable(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as clinic_error:
        _book(clinic_db, seeded, clinic_id=seeded.closed_clinic.id)
    with pytest.raises(HTTPException) as vaccine_error:
        _book(clinic_db, seeded, vaccine_id=seeded.retired_vaccine.id)

    assert clinic_error.value.status_code == 404
    assert vaccine_error.value.status_code == 404


def test_second_booking_for_same_slot_conflicts(clinic_db, seeded) -> None:
    _book(clinic_db, seeded)

    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, actor=seeded.other_parent_actor, child_id=seeded.other_child.id)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This time slot is already booked. Please select another time.'


def test_cancelled_appointment_frees_its_slot(clinic_db, seeded) -> None:
    first = _book(clinic_db, seeded)
    first.status = AppointmentStatus.CANCELLED.value
    clinic_db.commit()

    second = _book(clinic_db, seeded, actor=seeded.other_parent_actor, child_id=seeded.other_child.id)

    assert second.id != first.id


def test_same_time_at_another_clinic_is_free(clinic_db, seeded) -> None:
    clinic_db.add(
        type(seeded.batch)(
            clinic_id=seeded.other_clinic.id,
            vaccine_id=seeded.vaccine.id,
            batch_number='BCG-N1',
            quantity=5,
            remaining_doses=5,
            expiry_date=DAY + timedelta(days=30),
        )
    )
    clinic_db.commit()

    _book(clinic_db, seeded)
    other = _book(clinic_db, seeded, clinic_id=seeded.other_clinic.id)

    assert other.clinic_id == seeded.other_clinic.id


def test_vaccine_without_stock_is_insufficient_inventory(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, vaccine_id=seeded.double_dose.id)

    assert exception_info.value.status_code == 400
    assert 'find another center' in exception_info.value.detail


def test_batch_expiring_on_visit_day_is_insufficient(clinic_db, seeded) -> None:
    seeded.batch.expiry_date = DAY
    clinic_db.commit()

    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded)

    assert exception_info.value.status_code == 400


def test_past_dates_and_off_grid_times_are_rejected(clinic_db, seeded) -> None:
    with pytest.raises(HTTPException) as past_error:
        _book(clinic_db, seeded, scheduled_date=date.today() - timedelta(days=1))
    with pytest.raises(HTTPException) as grid_error:
        _book(clinic_db, seeded, scheduled_time='09:10')

    assert past_error.value.status_code == 400
    assert grid_error.value.status_code == 400


def test_unique_index_rejects_race_past_application_check(clinic_db, seeded, monkeypatch: pytest.MonkeyPatch) -> None:
    _book(clinic_db, seeded)
    monkeypatch.setattr(booking, 'ensure_slot_free', lambda *args, **kwargs: None)

    with pytest.raises(HTTPException) as exception_info:
        _book(clinic_db, seeded, actor=seeded.other_parent_actor, child_id=seeded.other_child.id)

    assert exception_info.value.status_code == 409
    active = clinic_db.query(Appointment).filter(
        Appointment.clinic_id == seeded.clinic.id,
        Appointment.scheduled_date == DAY,
        Appointment.scheduled_time == '09:00',
    ).count()
    assert active == 1


def test_storage_rejects_duplicate_active_slot_directly(clinic_db, seeded) -> None:
    for _ in range(2):
        clinic_db.add(
            Appointment(
                parent_id=seeded.parent.id,
                clinic_id=seeded.clinic.id,
                vaccine_id=seeded.vaccine.id,
                scheduled_date=DAY,
                scheduled_time='12:00',
                status=AppointmentStatus.CONFIRMED.value,
                verification_code='4321',
            )
        )

    with pytest.raises(IntegrityError):
        clinic_db.commit()
    clinic_db.rollback()
