# booking_core/services/slots/__init__.py
"""
Slots module.

Read path: compute_available_slots (grid + filter over one snapshot)
Write path: ReservationCommitter (keyed lock + re-validation + insert)
"""

from .config import BookingConfig, get_booking_config
from .domain import (
    BlackoutWindow,
    BusinessHours,
    DayHours,
    Reservation,
    ReservationStatus,
    Slot,
    SlotRequest,
)
from .errors import (
    BookingError,
    InvalidRequest,
    InvalidStatusTransition,
    ReservationNotFound,
    SlotConflict,
    StoreUnavailable,
)
from .generator import generate_candidates
from .availability import compute_available_slots, filter_available, suggest_alternatives
from .schedule import ScheduleConfigProvider
from .store import ReservationStore
from .locks import LocalKeyedLock, RedisKeyedLock, get_keyed_lock
from .committer import ReservationCommitter
from .lifecycle import transition_status

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "BlackoutWindow",
    "BusinessHours",
    "DayHours",
    "Reservation",
    "ReservationStatus",
    "Slot",
    "SlotRequest",
    "BookingError",
    "InvalidRequest",
    "InvalidStatusTransition",
    "ReservationNotFound",
    "SlotConflict",
    "StoreUnavailable",
    "generate_candidates",
    "compute_available_slots",
    "filter_available",
    "suggest_alternatives",
    "ScheduleConfigProvider",
    "ReservationStore",
    "LocalKeyedLock",
    "RedisKeyedLock",
    "get_keyed_lock",
    "ReservationCommitter",
    "transition_status",
]
