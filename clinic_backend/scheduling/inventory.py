"""Vaccine stock checks at booking time and the dose decrement at check-out."""

import logging
from datetime import date

from sqlalchemy import update
from sqlalchemy.orm import Session

from clinic_backend.core.errors import InsufficientInventoryError, ValidationError
from clinic_backend.models.inventory import VaccineInventory
from clinic_backend.models.vaccine import Vaccine

logger = logging.getLogger(__name__)

INSUFFICIENT_INVENTORY_MESSAGE = (
    'Insufficient vaccine inventory for the selected vaccine at this center. '
    'Please contact the center or find another center.'
)


def qualifying_batches(db: Session, clinic_id: int, vaccine: Vaccine, on_date: date):
    return db.query(VaccineInventory).filter(
        VaccineInventory.clinic_id == clinic_id,
        VaccineInventory.vaccine_id == vaccine.id,
        VaccineInventory.remaining_doses >= vaccine.dosage_count,
        VaccineInventory.expiry_date > on_date,
    )


def find_qualifying_batch(db: Session, clinic_id: int, vaccine: Vaccine, on_date: date) -> VaccineInventory | None:
    """Return the usable batch that expires first, or None."""
    return qualifying_batches(db, clinic_id, vaccine, on_date).order_by(
        VaccineInventory.expiry_date.asc(),
        VaccineInventory.id.asc(),
    ).first()


def ensure_inventory_available(db: Session, clinic_id: int, vaccine: Vaccine, on_date: date) -> VaccineInventory:
    batch = find_qualifying_batch(db, clinic_id, vaccine, on_date)
    if batch is None:
        raise InsufficientInventoryError(INSUFFICIENT_INVENTORY_MESSAGE)
    return batch


def find_batch_by_number(
    db: Session,
    clinic_id: int,
    vaccine: Vaccine,
    batch_number: str,
    on_date: date,
) -> VaccineInventory:
    batch = qualifying_batches(db, clinic_id, vaccine, on_date).filter(
        VaccineInventory.batch_number == batch_number.strip(),
    ).first()
    if batch is None:
        raise ValidationError(f'Batch {batch_number.strip()} is not usable for this appointment.')
    return batch


def decrement_batch(db: Session, batch: VaccineInventory, doses: int) -> None:
    """Take ``doses`` from ``batch`` inside the caller's transaction.

    The guard in the WHERE clause keeps a concurrent check-out from driving
    the batch below zero; the caller commits or rolls back.
    """
    result = db.execute(
        update(VaccineInventory)
        .where(
            VaccineInventory.id == batch.id,
            VaccineInventory.remaining_doses >= doses,
        )
        .values(remaining_doses=VaccineInventory.remaining_doses - doses)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientInventoryError(INSUFFICIENT_INVENTORY_MESSAGE)

    db.expire(batch, ['remaining_doses'])
    logger.info('Drew %s dose(s) from batch %s at clinic %s', doses, batch.batch_number, batch.clinic_id)
