# booking_core/services/slots/lifecycle.py
"""
Reservation status transitions.

  pending   → confirmed | cancelled
  confirmed → completed | cancelled
  completed, cancelled: terminal

No commit lock: the UPDATE is conditional on the status that was read, so
a stale caller cannot revive a cancelled booking. A cancelled booking stops
occupying time for the next availability read.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .domain import ALLOWED_TRANSITIONS, Reservation, ReservationStatus
from .errors import InvalidStatusTransition, ReservationNotFound, StoreUnavailable
from .store import ReservationStore, to_reservation

logger = logging.getLogger(__name__)


def ensure_transition(current: ReservationStatus, new: ReservationStatus) -> None:
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(f"Cannot change status from {current.value} to {new.value}")


def transition_status(
    db: Session,
    reservation_id: int,
    new_status: ReservationStatus,
    reason: str | None = None,
) -> Reservation:
    store = ReservationStore(db)
    try:
        row = store.get(reservation_id)
        if row is None:
            raise ReservationNotFound(f"Booking {reservation_id} not found")

        current = ReservationStatus(row.status)
        ensure_transition(current, new_status)

        cancel_reason = reason if new_status is ReservationStatus.CANCELLED else None
        if not store.set_status(reservation_id, current, new_status, cancel_reason):
            db.rollback()
            logger.warning(f"Booking {reservation_id} left {current.value} before the update to {new_status.value}")
            raise InvalidStatusTransition(
                f"Booking {reservation_id} is no longer {current.value}, cannot change to {new_status.value}"
            )
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store failure while updating booking {reservation_id}: {e}")
        raise StoreUnavailable(f"Store unavailable: {e}") from e

    logger.info(f"Booking {reservation_id} status: {current.value} → {new_status.value}")
    return to_reservation(row)
