# booking_core/services/slots/domain.py
"""
Value types shared by the slots engine.

All times are integer minutes since midnight of the booking date.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Mapping


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that occupy time on the professional's calendar
ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open overlap test: [a_start, a_end) and [b_start, b_end)."""
    return a_start < b_end and a_end > b_start


@dataclass(frozen=True)
class DayHours:
    open_minutes: int
    close_minutes: int


@dataclass(frozen=True)
class BusinessHours:
    """Weekday (0 = Monday) → opening hours. Missing weekday = closed."""
    days: Mapping[int, DayHours] = field(default_factory=dict)

    def for_date(self, target_date: date) -> DayHours | None:
        return self.days.get(target_date.weekday())


@dataclass(frozen=True)
class BlackoutWindow:
    resource_id: int
    date: date
    start_minutes: int
    end_minutes: int
    title: str = ""


@dataclass(frozen=True)
class Reservation:
    id: int | None
    resource_id: int
    date: date
    start_minutes: int
    duration_minutes: int
    status: ReservationStatus = ReservationStatus.PENDING
    client_id: str | None = None
    service_id: int | None = None
    request_token: str | None = None

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


@dataclass(frozen=True)
class SlotRequest:
    resource_id: int
    date: date
    service_duration_minutes: int


@dataclass(frozen=True, order=True)
class Slot:
    start_minutes: int
    duration_minutes: int

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """Everything the filter needs for one (resource, date), read together."""
    resource_id: int
    date: date
    hours: DayHours | None
    slot_step_minutes: int
    reservations: tuple[Reservation, ...] = ()
    blackouts: tuple[BlackoutWindow, ...] = ()
