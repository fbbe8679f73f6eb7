from .generated import (
    Base,
    Bookings,
    CalendarOverrides,
    Professionals,
    Services,
    Shops,
    TimeBlocks,
)

__all__ = [
    "Base",
    "Bookings",
    "CalendarOverrides",
    "Professionals",
    "Services",
    "Shops",
    "TimeBlocks",
]
