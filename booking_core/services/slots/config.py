# booking_core/services/slots/config.py
"""
Booking configuration for slots calculation.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...config import settings

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for booking/slots system.

    Attributes:
        horizon_days: How many days ahead a date may be requested
        min_advance_minutes: Extra lead time added to "now" for today's cutoff
        slot_step_minutes: Default grid step in minutes
        default_open / default_close: Fallback hours ("HH:MM") when neither
            the professional nor the shop has a work schedule
        suggestion_limit: Alternatives returned with a slot conflict
    """
    horizon_days: int = 60
    min_advance_minutes: int = 0
    slot_step_minutes: int = 30
    default_open: str = "08:00"
    default_close: str = "19:00"
    suggestion_limit: int = 5

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes <= 0:
            raise ValueError(f"slot_step_minutes must be positive, got {self.slot_step_minutes}")
        if self.min_advance_minutes < 0:
            raise ValueError(f"min_advance_minutes must not be negative, got {self.min_advance_minutes}")
        if time_str_to_minutes(self.default_open) >= time_str_to_minutes(self.default_close):
            raise ValueError(
                f"default_open must be before default_close, got {self.default_open}-{self.default_close}"
            )


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton), built from settings."""
    return BookingConfig(
        horizon_days=settings.horizon_days,
        min_advance_minutes=settings.min_advance_minutes,
        slot_step_minutes=settings.slot_step_minutes,
        default_open=settings.default_open,
        default_close=settings.default_close,
        suggestion_limit=settings.suggestion_limit,
    )


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" (or "HH:MM:SS") to minutes since midnight.

    "24:00" is accepted as end of day.
    """
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time string: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    total = hour * 60 + minute
    if not (0 <= minute < 60) or not (0 <= total <= MINUTES_PER_DAY):
        raise ValueError(f"Invalid time string: {value!r}")
    return total


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    hour, minute = divmod(minutes, 60)
    return f"{hour:02d}:{minute:02d}"
