# booking_core/services/slots/errors.py
"""
Errors raised by the slots engine.

InvalidRequest      : malformed input, rejected before any computation
SlotConflict        : requested interval is no longer free at commit time
StoreUnavailable    : transient store/lock failure, safe to retry the commit
ReservationNotFound : unknown reservation id
InvalidStatusTransition : status change not allowed by the lifecycle
"""


class BookingError(Exception):
    """Base class for slots engine errors."""


class InvalidRequest(BookingError):
    pass


class SlotConflict(BookingError):
    def __init__(
        self,
        message: str,
        conflict_start: int | None = None,
        conflict_end: int | None = None,
        suggested_starts: list[int] | None = None,
    ):
        super().__init__(message)
        self.conflict_start = conflict_start
        self.conflict_end = conflict_end
        self.suggested_starts = suggested_starts or []


class StoreUnavailable(BookingError):
    pass


class ReservationNotFound(BookingError):
    pass


class InvalidStatusTransition(BookingError):
    pass
