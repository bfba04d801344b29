from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from clinic_backend.core.identity import Actor
from clinic_backend.database import Base, build_session_factory, init_database
from clinic_backend.models.child import Child
from clinic_backend.models.clinic import Clinic
from clinic_backend.models.inventory import VaccineInventory
from clinic_backend.models.user import User, UserType
from clinic_backend.models.vaccine import Vaccine

BOOKING_DAY = date.today() + timedelta(days=7)


@pytest.fixture
def clinic_engine():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    init_database(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def clinic_db(clinic_engine):
    db = build_session_factory(clinic_engine)()
    try:
        yield db
    finally:
        db.close()


def seed_clinic_data(db) -> SimpleNamespace:
    clinic = Clinic(name='Central Clinic', address='1 Main Road', phone='555-0100')
    other_clinic = Clinic(name='North Clinic', address='9 Hill Street', phone='555-0199')
    closed_clinic = Clinic(name='Closed Clinic', is_active=False)
    vaccine = Vaccine(name='BCG', manufacturer='Serum Institute', dosage_count=1, dose_interval_days=28)
    double_dose = Vaccine(name='Polio', manufacturer='Bharat Biotech', dosage_count=2)
    retired_vaccine = Vaccine(name='Retired', dosage_count=1, is_active=False)
    db.add_all([clinic, other_clinic, closed_clinic, vaccine, double_dose, retired_vaccine])
    db.flush()

    parent = User(email='parent@example.com', full_name='Asha Parent', user_type=UserType.PARENT.value)
    other_parent = User(email='other@example.com', full_name='Ravi Other', user_type=UserType.PARENT.value)
    staff = User(
        email='nurse@clinic.example',
        full_name='Nina Nurse',
        user_type=UserType.MEDICAL_STAFF.value,
        clinic_id=clinic.id,
    )
    other_staff = User(
        email='nurse@north.example',
        full_name='Omar Nurse',
        user_type=UserType.MEDICAL_STAFF.value,
        clinic_id=other_clinic.id,
    )
    admin = User(email='admin@clinic.example', full_name='Ada Admin', user_type=UserType.ADMIN.value)
    db.add_all([parent, other_parent, staff, other_staff, admin])
    db.flush()

    child = Child(parent_id=parent.id, name='Mira', date_of_birth=date.today() - timedelta(days=60))
    other_child = Child(parent_id=other_parent.id, name='Kabir', date_of_birth=date.today() - timedelta(days=90))
    inactive_child = Child(parent_id=parent.id, name='Archived', is_active=False)
    db.add_all([child, other_child, inactive_child])

    batch = VaccineInventory(
        clinic_id=clinic.id,
        vaccine_id=vaccine.id,
        batch_number='BCG-001',
        quantity=10,
        remaining_doses=10,
        expiry_date=BOOKING_DAY + timedelta(days=90),
    )
    db.add(batch)
    db.commit()

    return SimpleNamespace(
        clinic=clinic,
        other_clinic=other_clinic,
        closed_clinic=closed_clinic,
        vaccine=vaccine,
        double_dose=double_dose,
        retired_vaccine=retired_vaccine,
        parent=parent,
        other_parent=other_parent,
        staff=staff,
        other_staff=other_staff,
        admin=admin,
        child=child,
        other_child=other_child,
        inactive_child=inactive_child,
        batch=batch,
        parent_actor=Actor(id=parent.id, user_type=UserType.PARENT),
        other_parent_actor=Actor(id=other_parent.id, user_type=UserType.PARENT),
        staff_actor=Actor(id=staff.id, user_type=UserType.MEDICAL_STAFF, clinic_id=clinic.id),
        other_staff_actor=Actor(id=other_staff.id, user_type=UserType.MEDICAL_STAFF, clinic_id=other_clinic.id),
        admin_actor=Actor(id=admin.id, user_type=UserType.ADMIN),
    )


@pytest.fixture
def seeded(clinic_db) -> SimpleNamespace:
    return seed_clinic_data(clinic_db)


@pytest.fixture
def api_client(tmp_path, monkeypatch: pytest.MonkeyPatch):
    from fastapi.testclient import TestClient

    from clinic_backend.core import config
    from clinic_backend.main import app

    monkeypatch.setattr(config, 'DATABASE_URL', f'sqlite:///{tmp_path / "api.db"}')
    with TestClient(app) as client:
        db = app.state.session_factory()
        try:
            yield client, seed_clinic_data(db)
        finally:
            db.close()
