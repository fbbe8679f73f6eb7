# booking_core/services/slots/generator.py
"""
Candidate start times for a day.

Produces the raw grid:
  open, open + step, open + 2*step, ... while start < close

Contains:
✓ business hours (open/close)
✓ grid step

Does NOT contain:
✗ Service duration (the last start may not fit before close)
✗ Reservations, blackouts, "now" (see availability.py)
"""


def generate_candidates(open_minutes: int, close_minutes: int, step_minutes: int) -> list[int]:
    """
    Generate evenly spaced candidate starts in [open_minutes, close_minutes).

    Returns:
        Strictly increasing list of minutes since midnight. Empty if open >= close.
    """
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")

    return list(range(open_minutes, close_minutes, step_minutes))
