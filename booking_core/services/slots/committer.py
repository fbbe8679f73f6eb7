# booking_core/services/slots/committer.py
"""
Reservation commit: the only write path that creates bookings.

Under the lock for (professional, date):
  1. fresh session, fresh snapshot (never the caller's slot list)
  2. re-check the requested (start, duration)
  3. insert as "pending", confirm the lease is still held, commit
     (or raise SlotConflict at step 2)

SlotConflict is final for that request: the engine does not retry with
another slot. StoreUnavailable is safe to retry with the same request_token.
"""

import logging
from datetime import date, datetime
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...database import SessionLocal
from .availability import (
    check_requested_slot,
    cutoff_minutes,
    load_snapshot,
    slots_from_snapshot,
    suggest_alternatives,
    validate_request,
)
from .config import BookingConfig, get_booking_config, minutes_to_time_str, MINUTES_PER_DAY
from .domain import Reservation, ReservationStatus
from .errors import InvalidRequest, SlotConflict, StoreUnavailable
from .locks import KeyedLock, Lease, get_keyed_lock, lock_key
from .schedule import ScheduleConfigProvider, occupied_minutes
from .store import ReservationStore, to_reservation

logger = logging.getLogger(__name__)


class ReservationCommitter:
    """Atomically validates and inserts reservations."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        lock: KeyedLock | None = None,
        config: BookingConfig | None = None,
    ):
        self.session_factory = session_factory
        self.lock = lock or get_keyed_lock()
        self.config = config or get_booking_config()

    def commit(
        self,
        resource_id: int,
        target_date: date,
        start_minutes: int,
        duration_minutes: int | None,
        client_id: str,
        service_id: int | None = None,
        request_token: str | None = None,
        now: datetime | None = None,
    ) -> Reservation:
        """
        Create a pending reservation for [start, start + duration).

        duration_minutes may be None when service_id is given: the service's
        duration plus break is used.

        Raises:
            InvalidRequest: malformed request, nothing was written
            SlotConflict: interval taken, outside hours, blacked out or past
            StoreUnavailable: store or lock failure, retry is safe
        """
        if not 0 <= start_minutes < MINUTES_PER_DAY:
            raise InvalidRequest(f"Start must be within the day, got {start_minutes}")
        if not client_id:
            raise InvalidRequest("client_id is required")

        today = now.date() if now is not None else date.today()
        duration_minutes = self._validate(resource_id, target_date, duration_minutes, service_id, today)

        key = lock_key(resource_id, target_date)
        with self.lock.hold(key) as lease:
            return self._commit_locked(
                lease,
                resource_id,
                target_date,
                start_minutes,
                duration_minutes,
                client_id,
                service_id,
                request_token,
                now,
            )

    # ── Internals ────────────────────────────────────────────────────────

    def _validate(
        self,
        resource_id: int,
        target_date: date,
        duration_minutes: int | None,
        service_id: int | None,
        today: date,
    ) -> int:
        """Check the request against the store; returns the duration to book."""
        # Separate short session: no read transaction is kept open while waiting for the lock
        db = self.session_factory()
        try:
            schedule = ScheduleConfigProvider(db, self.config)
            if service_id is not None:
                service = schedule.get_service(service_id)
                professional = schedule.get_professional(resource_id)
                if service is None or (professional is not None and service.shop_id != professional.shop_id):
                    raise InvalidRequest(f"Unknown service {service_id}")
                if duration_minutes is None:
                    duration_minutes = occupied_minutes(service)
            if duration_minutes is None:
                raise InvalidRequest("service_id or duration_minutes required")

            validate_request(schedule, resource_id, target_date, duration_minutes, today, self.config)
            return duration_minutes
        except SQLAlchemyError as e:
            logger.error(f"Store read failed while validating booking: {e}")
            raise StoreUnavailable(f"Store unavailable: {e}") from e
        finally:
            db.close()

    def _commit_locked(
        self,
        lease: Lease,
        resource_id: int,
        target_date: date,
        start_minutes: int,
        duration_minutes: int,
        client_id: str,
        service_id: int | None,
        request_token: str | None,
        now: datetime | None,
    ) -> Reservation:
        db = self.session_factory()
        store = ReservationStore(db)
        try:
            if request_token:
                existing = store.find_by_token(request_token)
                if existing is not None:
                    logger.info(f"Booking request replayed: token={request_token} → booking {existing.id}")
                    return to_reservation(existing)

            snapshot = load_snapshot(db, resource_id, target_date, self.config)
            now_minutes = cutoff_minutes(target_date, now, self.config)

            conflict = check_requested_slot(snapshot, start_minutes, duration_minutes, now_minutes)
            if conflict is not None:
                suggestions = suggest_alternatives(
                    slots_from_snapshot(snapshot, duration_minutes, now_minutes),
                    start_minutes,
                    self.config.suggestion_limit,
                )
                db.rollback()
                logger.warning(
                    f"Slot conflict: professional={resource_id} date={target_date} "
                    f"start={minutes_to_time_str(start_minutes)} duration={duration_minutes} "
                    f"reason={conflict.reason}"
                )
                raise SlotConflict(
                    f"Requested slot is not available ({conflict.reason})",
                    conflict_start=conflict.start_minutes,
                    conflict_end=conflict.end_minutes,
                    suggested_starts=suggestions,
                )

            professional = ScheduleConfigProvider(db, self.config).get_professional(resource_id)
            if professional is None:
                raise InvalidRequest(f"Unknown professional {resource_id}")
            row = store.insert(
                Reservation(
                    id=None,
                    resource_id=resource_id,
                    date=target_date,
                    start_minutes=start_minutes,
                    duration_minutes=duration_minutes,
                    status=ReservationStatus.PENDING,
                    client_id=client_id,
                    service_id=service_id,
                    request_token=request_token,
                ),
                shop_id=professional.shop_id,
            )
            if not lease.owned():
                db.rollback()
                logger.error(f"Lock for professional={resource_id} date={target_date} lost before commit")
                raise StoreUnavailable("Booking lock expired before commit, retry the request")
            db.commit()
            db.refresh(row)

            reservation = to_reservation(row)
            logger.info(
                f"Booking created: id={reservation.id} professional={resource_id} "
                f"date={target_date} start={minutes_to_time_str(start_minutes)} "
                f"duration={duration_minutes}"
            )
            return reservation

        except IntegrityError as e:
            db.rollback()
            # Same token committed elsewhere; hand back that booking
            if request_token:
                existing = store.find_by_token(request_token)
                if existing is not None:
                    return to_reservation(existing)
            logger.error(f"Booking insert rejected by store: {e}")
            raise StoreUnavailable(f"Store rejected booking: {e}") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Store failure while committing booking: {e}")
            raise StoreUnavailable(f"Store unavailable: {e}") from e
        finally:
            db.close()
