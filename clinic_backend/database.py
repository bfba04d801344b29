from threading import Lock
from weakref import WeakSet

from fastapi import Request
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker


Base = declarative_base()

ACTIVE_SLOT_INDEX_NAME = 'uq_appointments_active_slot'

_schema_lock = Lock()
_appointment_schema_checked: WeakSet = WeakSet()


def create_db_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith('sqlite'):
        connect_args['check_same_thread'] = False
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )


def init_database(engine: Engine) -> None:
    # Registers every mapped table on Base.metadata before create_all.
    from clinic_backend.models import (  # noqa: F401
        appointment,
        child,
        clinic,
        inventory,
        user,
        vaccination_record,
        vaccine,
    )

    Base.metadata.create_all(bind=engine)
    ensure_appointment_schema(engine)


def ensure_appointment_schema(engine: Engine) -> None:
    if engine in _appointment_schema_checked:
        return

    with _schema_lock:
        if engine in _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked.add(engine)
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('is_parent_acknowledged',
             'ALTER TABLE appointments ADD COLUMN is_parent_acknowledged BOOLEAN NOT NULL DEFAULT FALSE'),
            ('parent_acknowledged_at', 'ALTER TABLE appointments ADD COLUMN parent_acknowledged_at TIMESTAMP'),
            ('vaccine_inventory_id', 'ALTER TABLE appointments ADD COLUMN vaccine_inventory_id INTEGER'),
            ('checked_in_at', 'ALTER TABLE appointments ADD COLUMN checked_in_at TIMESTAMP'),
            ('checked_out_at', 'ALTER TABLE appointments ADD COLUMN checked_out_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    f'CREATE UNIQUE INDEX IF NOT EXISTS {ACTIVE_SLOT_INDEX_NAME} '
                    'ON appointments(clinic_id, scheduled_date, scheduled_time) '
                    "WHERE status IN ('SCHEDULED', 'CONFIRMED')"
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_parent_date ON appointments(parent_id, scheduled_date)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_clinic_status ON appointments(clinic_id, status)')
            )

        _appointment_schema_checked.add(engine)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
