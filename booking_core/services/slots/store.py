# booking_core/services/slots/store.py
"""
SQL storage for reservations (table `bookings`).

The store never commits: transaction boundaries belong to the caller
(ReservationCommitter for inserts, lifecycle for status changes).
"""

from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from ...models import Bookings
from .domain import ACTIVE_STATUSES, Reservation, ReservationStatus


class ReservationStore:
    """Reservation reads/writes on a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    # ── Read ─────────────────────────────────────────────────────────────

    def list_active_reservations(self, resource_id: int, target_date: date) -> list[Reservation]:
        """Pending/confirmed reservations for professional on date, by start."""
        rows = (
            self.db.query(Bookings)
            .filter(
                Bookings.professional_id == resource_id,
                Bookings.booking_date == target_date.isoformat(),
                Bookings.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
            .order_by(Bookings.start_minutes, Bookings.id)
            .all()
        )
        return [to_reservation(row) for row in rows]

    def get(self, reservation_id: int) -> Bookings | None:
        return self.db.get(Bookings, reservation_id)

    def find_by_token(self, request_token: str) -> Bookings | None:
        return (
            self.db.query(Bookings)
            .filter(Bookings.request_token == request_token)
            .first()
        )

    # ── Write ────────────────────────────────────────────────────────────

    def insert(self, reservation: Reservation, shop_id: int) -> Bookings:
        """Add a reservation row and flush it so the id is assigned."""
        row = Bookings(
            shop_id=shop_id,
            professional_id=reservation.resource_id,
            service_id=reservation.service_id,
            client_id=reservation.client_id,
            booking_date=reservation.date.isoformat(),
            start_minutes=reservation.start_minutes,
            duration_minutes=reservation.duration_minutes,
            status=reservation.status.value,
            request_token=reservation.request_token,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def set_status(
        self,
        reservation_id: int,
        expected: ReservationStatus,
        status: ReservationStatus,
        cancel_reason: str | None = None,
    ) -> bool:
        """
        Move a booking from `expected` to `status`.

        The UPDATE only matches while the stored status is still `expected`,
        so a change made elsewhere since the row was read wins. Returns False
        when nothing matched.
        """
        values = {
            "status": status.value,
            "updated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
        }
        if cancel_reason is not None:
            values["cancel_reason"] = cancel_reason

        updated = (
            self.db.query(Bookings)
            .filter(Bookings.id == reservation_id, Bookings.status == expected.value)
            .update(values, synchronize_session=False)
        )
        return updated == 1


def to_reservation(row: Bookings) -> Reservation:
    return Reservation(
        id=row.id,
        resource_id=row.professional_id,
        date=date.fromisoformat(row.booking_date),
        start_minutes=row.start_minutes,
        duration_minutes=row.duration_minutes,
        status=ReservationStatus(row.status),
        client_id=row.client_id,
        service_id=row.service_id,
        request_token=row.request_token,
    )
