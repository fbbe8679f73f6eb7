# booking_core/services/slots/availability.py
"""
Service availability for one professional on one day.

Read path:
  snapshot (hours + step + reservations + blackouts)
    → generate_candidates (grid)
    → filter_available (duration, reservations, blackouts, close, now)
    → ordered list of Slot

filter_available is pure: no I/O, no exceptions, same snapshot → same output.
Request validation happens before it, in validate_request.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, NamedTuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import BookingConfig, get_booking_config, MINUTES_PER_DAY
from .domain import (
    AvailabilitySnapshot,
    BlackoutWindow,
    Reservation,
    Slot,
    SlotRequest,
    intervals_overlap,
)
from .errors import InvalidRequest, StoreUnavailable
from .generator import generate_candidates
from .schedule import ScheduleConfigProvider
from .store import ReservationStore

logger = logging.getLogger(__name__)


class Conflict(NamedTuple):
    reason: str
    start_minutes: int
    end_minutes: int


def compute_available_slots(
    db: Session,
    request: SlotRequest,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> list[Slot]:
    """
    Calculate bookable slots for a professional/date/duration.

    The today-cutoff applies only when `now` is given and falls on the
    requested date.

    Raises:
        InvalidRequest: before any computation, for malformed requests.
        StoreUnavailable: the store could not be read.
    """
    config = config or get_booking_config()
    schedule = ScheduleConfigProvider(db, config)

    today = now.date() if now is not None else date.today()
    try:
        validate_request(schedule, request.resource_id, request.date, request.service_duration_minutes, today, config)
        snapshot = load_snapshot(db, request.resource_id, request.date, config)
    except SQLAlchemyError as e:
        logger.error(f"Store read failed while computing slots: {e}")
        raise StoreUnavailable(f"Store unavailable: {e}") from e

    return slots_from_snapshot(
        snapshot,
        request.service_duration_minutes,
        cutoff_minutes(request.date, now, config),
    )


def validate_request(
    schedule: ScheduleConfigProvider,
    resource_id: int,
    target_date: date,
    duration_minutes: int,
    today: date,
    config: BookingConfig,
) -> None:
    if duration_minutes <= 0:
        raise InvalidRequest(f"Service duration must be positive, got {duration_minutes}")

    if target_date < today:
        raise InvalidRequest("Date cannot be in the past")

    if target_date > today + timedelta(days=config.horizon_days):
        raise InvalidRequest(f"Date cannot be more than {config.horizon_days} days ahead")

    if schedule.get_professional(resource_id) is None:
        raise InvalidRequest(f"Unknown professional {resource_id}")


def load_snapshot(
    db: Session,
    resource_id: int,
    target_date: date,
    config: BookingConfig | None = None,
) -> AvailabilitySnapshot:
    """Read hours, grid step, reservations and blackouts on one session."""
    schedule = ScheduleConfigProvider(db, config)
    store = ReservationStore(db)

    return AvailabilitySnapshot(
        resource_id=resource_id,
        date=target_date,
        hours=schedule.get_day_hours(resource_id, target_date),
        slot_step_minutes=schedule.get_slot_step(resource_id),
        reservations=tuple(store.list_active_reservations(resource_id, target_date)),
        blackouts=tuple(schedule.list_blackouts(resource_id, target_date)),
    )


def slots_from_snapshot(
    snapshot: AvailabilitySnapshot,
    duration_minutes: int,
    now_minutes: int | None = None,
) -> list[Slot]:
    """Pure composition of the grid and the filter over a snapshot."""
    if snapshot.hours is None:
        return []

    candidates = generate_candidates(
        snapshot.hours.open_minutes,
        snapshot.hours.close_minutes,
        snapshot.slot_step_minutes,
    )
    return filter_available(
        candidates,
        duration_minutes,
        snapshot.reservations,
        snapshot.blackouts,
        snapshot.hours.close_minutes,
        now_minutes,
    )


def filter_available(
    candidates: Iterable[int],
    duration_minutes: int,
    reservations: Iterable[Reservation],
    blackouts: Iterable[BlackoutWindow],
    close_minutes: int,
    now_minutes: int | None = None,
) -> list[Slot]:
    """
    Keep candidates whose [start, start + duration) fits before close,
    starts after now and overlaps no active reservation or blackout.
    """
    reservations = [r for r in reservations if r.is_active]
    blackouts = list(blackouts)

    available = []
    for start in candidates:
        end = start + duration_minutes
        if end > close_minutes:
            continue
        if now_minutes is not None and start <= now_minutes:
            continue
        if find_conflict(start, end, reservations, blackouts) is not None:
            continue
        available.append(Slot(start, duration_minutes))

    return available


def find_conflict(
    start: int,
    end: int,
    reservations: Iterable[Reservation],
    blackouts: Iterable[BlackoutWindow],
) -> Conflict | None:
    """First active reservation or blackout overlapping [start, end)."""
    for res in reservations:
        if res.is_active and intervals_overlap(start, end, res.start_minutes, res.end_minutes):
            return Conflict("reservation", res.start_minutes, res.end_minutes)

    for blackout in blackouts:
        if intervals_overlap(start, end, blackout.start_minutes, blackout.end_minutes):
            return Conflict("blackout", blackout.start_minutes, blackout.end_minutes)

    return None


def check_requested_slot(
    snapshot: AvailabilitySnapshot,
    start: int,
    duration_minutes: int,
    now_minutes: int | None = None,
) -> Conflict | None:
    """
    Same rules as filter_available, for one specific (start, duration)
    that need not lie on the grid.
    """
    end = start + duration_minutes

    if snapshot.hours is None:
        return Conflict("closed", start, end)
    if start < snapshot.hours.open_minutes or end > snapshot.hours.close_minutes:
        return Conflict("outside_hours", snapshot.hours.open_minutes, snapshot.hours.close_minutes)
    if now_minutes is not None and start <= now_minutes:
        return Conflict("past", start, end)

    return find_conflict(start, end, snapshot.reservations, snapshot.blackouts)


def cutoff_minutes(
    target_date: date,
    now: datetime | None,
    config: BookingConfig,
) -> int | None:
    """Time-of-day (minutes) at or before which today's slots are gone."""
    if now is None or now.date() != target_date:
        return None
    return min(now.hour * 60 + now.minute + config.min_advance_minutes, MINUTES_PER_DAY)


def suggest_alternatives(
    slots: Iterable[Slot],
    preferred_start: int,
    limit: int = 5,
) -> list[int]:
    """Available starts nearest to preferred_start (earlier wins ties)."""
    starts = [slot.start_minutes for slot in slots]
    starts.sort(key=lambda s: (abs(s - preferred_start), s))
    return starts[:limit]
