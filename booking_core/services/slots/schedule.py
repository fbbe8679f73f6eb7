# booking_core/services/slots/schedule.py
"""
Schedule configuration for a professional.

Resolves, per (professional, date):
✓ business hours: overrides → professional schedule → shop schedule → defaults
✓ grid step: professional setting → BookingConfig
✓ blackout windows: time_blocks (recurring and one-off) + gaps between
  working intervals of the day

work_schedule JSON formats:
  Format A: {"mon": {"start": "09:00", "end": "18:00"}, "sun": null}
            {"mon": [["09:00", "12:00"], ["13:00", "18:00"]]}
  Format B: {"0": [["09:00", "18:00"]]}   (0 = Monday)
"""

import json
import logging
from datetime import date

from sqlalchemy.orm import Session

from ...models import CalendarOverrides, Professionals, Services, Shops, TimeBlocks
from .config import BookingConfig, get_booking_config, time_str_to_minutes
from .domain import BlackoutWindow, BusinessHours, DayHours

logger = logging.getLogger(__name__)

DAY_NAMES = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]
DEFAULT_WORKING_DAYS = range(0, 6)  # Monday–Saturday

Interval = tuple[int, int]


class ScheduleConfigProvider:
    """Reads business hours, grid step and blackouts from the database."""

    def __init__(self, db: Session, config: BookingConfig | None = None):
        self.db = db
        self.config = config or get_booking_config()

    # ── Resource ─────────────────────────────────────────────────────────

    def get_professional(self, resource_id: int) -> Professionals | None:
        """Active professional by id, or None."""
        return (
            self.db.query(Professionals)
            .filter(Professionals.id == resource_id, Professionals.is_active == 1)
            .first()
        )

    def get_service(self, service_id: int) -> Services | None:
        """Active service by id, or None."""
        return (
            self.db.query(Services)
            .filter(Services.id == service_id, Services.is_active == 1)
            .first()
        )

    def get_service_duration(self, service_id: int) -> int | None:
        """Minutes a service occupies (duration + break), None if unknown/inactive."""
        service = self.get_service(service_id)
        if service is None:
            return None
        return occupied_minutes(service)

    def get_slot_step(self, resource_id: int) -> int:
        professional = self.get_professional(resource_id)
        if professional is not None and professional.slot_step_minutes:
            return professional.slot_step_minutes
        return self.config.slot_step_minutes

    # ── Business hours ───────────────────────────────────────────────────

    def get_business_hours(self, resource_id: int, target_date: date) -> BusinessHours:
        """
        Weekly hours for the professional, with target_date's weekday
        resolved against calendar overrides.
        """
        professional = self.get_professional(resource_id)
        if professional is None:
            return BusinessHours()

        schedule = self._effective_schedule(professional)
        days: dict[int, DayHours] = {}
        for weekday in range(7):
            if weekday == target_date.weekday():
                intervals = self._day_intervals(professional, target_date, schedule)
            else:
                intervals = self._schedule_intervals(schedule, weekday)
            hours = _intervals_to_hours(intervals)
            if hours is not None:
                days[weekday] = hours

        return BusinessHours(days=days)

    def get_day_hours(self, resource_id: int, target_date: date) -> DayHours | None:
        return self.get_business_hours(resource_id, target_date).for_date(target_date)

    # ── Blackouts ────────────────────────────────────────────────────────

    def list_blackouts(self, resource_id: int, target_date: date) -> list[BlackoutWindow]:
        """Blackout windows for the professional on target_date, sorted by start."""
        professional = self.get_professional(resource_id)
        if professional is None:
            return []

        blackouts: list[BlackoutWindow] = []

        for block in self._get_time_blocks(resource_id, target_date):
            try:
                start_min = time_str_to_minutes(block.start_time)
                end_min = time_str_to_minutes(block.end_time)
            except ValueError:
                logger.warning(f"Skipping time block {block.id}: bad time range")
                continue
            if start_min >= end_min:
                continue
            blackouts.append(BlackoutWindow(
                resource_id=resource_id,
                date=target_date,
                start_minutes=start_min,
                end_minutes=end_min,
                title=block.title,
            ))

        # Gaps between working intervals (e.g. lunch in a split schedule)
        schedule = self._effective_schedule(professional)
        intervals = self._day_intervals(professional, target_date, schedule)
        for gap_start, gap_end in _gaps(intervals):
            blackouts.append(BlackoutWindow(
                resource_id=resource_id,
                date=target_date,
                start_minutes=gap_start,
                end_minutes=gap_end,
                title="break",
            ))

        blackouts.sort(key=lambda b: (b.start_minutes, b.end_minutes))
        return blackouts

    # ── Helpers ──────────────────────────────────────────────────────────

    def _effective_schedule(self, professional: Professionals) -> dict | None:
        """Professional schedule, else shop schedule, else None (= defaults)."""
        schedule = _load_schedule(professional.work_schedule)
        if schedule:
            return schedule

        shop = self.db.get(Shops, professional.shop_id)
        if shop is not None:
            schedule = _load_schedule(shop.work_schedule)
            if schedule:
                return schedule

        return None

    def _schedule_intervals(self, schedule: dict | None, weekday: int) -> list[Interval]:
        if schedule is None:
            if weekday not in DEFAULT_WORKING_DAYS:
                return []
            return [(
                time_str_to_minutes(self.config.default_open),
                time_str_to_minutes(self.config.default_close),
            )]
        return _parse_intervals(_get_day_intervals(schedule, weekday))

    def _day_intervals(
        self,
        professional: Professionals,
        target_date: date,
        schedule: dict | None,
    ) -> list[Interval]:
        """Working intervals for one date, overrides applied."""
        overrides = (
            self._get_overrides("professional", professional.id, target_date)
            or self._get_overrides("shop", professional.shop_id, target_date)
        )

        if overrides:
            for ovr in overrides:
                if ovr.override_kind == "day_off":
                    return []
            for ovr in overrides:
                custom = _parse_override_hours(ovr.reason)
                if custom is not None:
                    return [custom]
            # Override without custom hours blocks the day
            return []

        return self._schedule_intervals(schedule, target_date.weekday())

    def _get_overrides(self, target_type: str, target_id: int, target_date: date) -> list:
        date_str = target_date.isoformat()

        return (
            self.db.query(CalendarOverrides)
            .filter(
                CalendarOverrides.target_type == target_type,
                CalendarOverrides.target_id == target_id,
                CalendarOverrides.date_start <= date_str,
                CalendarOverrides.date_end >= date_str,
            )
            .all()
        )

    def _get_time_blocks(self, resource_id: int, target_date: date) -> list:
        blocks = (
            self.db.query(TimeBlocks)
            .filter(TimeBlocks.professional_id == resource_id)
            .all()
        )
        date_str = target_date.isoformat()
        weekday = target_date.weekday()

        return [
            b for b in blocks
            if (b.is_recurring and b.day_of_week == weekday)
            or (not b.is_recurring and b.block_date == date_str)
        ]


def occupied_minutes(service: Services) -> int:
    return service.duration_min + (service.break_min or 0)


def _load_schedule(work_schedule_json: str | None) -> dict:
    try:
        schedule = json.loads(work_schedule_json) if work_schedule_json else {}
    except json.JSONDecodeError:
        logger.warning("Invalid work_schedule JSON, ignoring")
        schedule = {}
    return schedule if isinstance(schedule, dict) else {}


def _get_day_intervals(schedule: dict, weekday: int) -> list:
    """
    Extract raw intervals for a weekday. Supports Format A and Format B.

    Returns list of intervals: [["09:00", "18:00"], ...]
    """
    # Format B: numeric keys "0", "1", etc.
    weekday_str = str(weekday)
    if weekday_str in schedule:
        intervals = schedule[weekday_str]
        if isinstance(intervals, list):
            return intervals
        return []

    # Format A: named keys "mon", "tue", etc.
    day_name = DAY_NAMES[weekday]
    if day_name in schedule:
        day_data = schedule[day_name]

        if day_data is None:
            return []

        if isinstance(day_data, dict):
            start = day_data.get("start")
            end = day_data.get("end")
            if start and end:
                return [[start, end]]

        if isinstance(day_data, list):
            return day_data

    return []


def _parse_intervals(raw: list) -> list[Interval]:
    """Convert [["HH:MM", "HH:MM"], ...] to sorted minute pairs, dropping bad entries."""
    intervals: list[Interval] = []
    for interval in raw:
        if not isinstance(interval, (list, tuple)) or len(interval) != 2:
            continue
        try:
            start_min = time_str_to_minutes(interval[0])
            end_min = time_str_to_minutes(interval[1])
        except (ValueError, AttributeError):
            continue
        if start_min < end_min:
            intervals.append((start_min, end_min))
    intervals.sort()
    return intervals


def _parse_override_hours(reason: str | None) -> Interval | None:
    """Custom hours in override reason, e.g. "10:00-14:00"."""
    if not reason or "-" not in reason:
        return None
    parts = reason.split("-")
    if len(parts) != 2 or ":" not in parts[0] or ":" not in parts[1]:
        return None
    try:
        start_min = time_str_to_minutes(parts[0])
        end_min = time_str_to_minutes(parts[1])
    except ValueError:
        return None
    if start_min >= end_min:
        return None
    return start_min, end_min


def _intervals_to_hours(intervals: list[Interval]) -> DayHours | None:
    if not intervals:
        return None
    return DayHours(
        open_minutes=min(start for start, _ in intervals),
        close_minutes=max(end for _, end in intervals),
    )


def _gaps(intervals: list[Interval]) -> list[Interval]:
    """Uncovered ranges between sorted working intervals."""
    gaps: list[Interval] = []
    covered_until = None
    for start, end in intervals:
        if covered_until is not None and start > covered_until:
            gaps.append((covered_until, start))
        covered_until = end if covered_until is None else max(covered_until, end)
    return gaps
