import json
from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from booking_core.database import make_engine
from booking_core.models import Bookings, CalendarOverrides, TimeBlocks
from booking_core.services.slots import (
    BlackoutWindow,
    InvalidRequest,
    Reservation,
    ReservationStatus,
    Slot,
    SlotRequest,
    StoreUnavailable,
    compute_available_slots,
    filter_available,
    generate_candidates,
    suggest_alternatives,
)
from booking_core.services.slots.config import time_str_to_minutes as m

from .conftest import every_day

DAY = date.today() + timedelta(days=1)


def _reservation(start: str, duration: int, status=ReservationStatus.CONFIRMED) -> Reservation:
    return Reservation(id=1, resource_id=1, date=DAY, start_minutes=m(start), duration_minutes=duration, status=status)


def _starts(slots: list[Slot]) -> list[str]:
    return [f"{s.start_minutes // 60:02d}:{s.start_minutes % 60:02d}" for s in slots]


# ── Pure filter ─────────────────────────────────────────────────────────


def test_scenario_a_no_reservations():
    candidates = generate_candidates(m("09:00"), m("12:00"), 30)
    slots = filter_available(candidates, 60, [], [], m("12:00"))
    assert _starts(slots) == ["09:00", "09:30", "10:00", "10:30", "11:00"]


def test_scenario_b_reservation_blocks_overlapping_starts():
    candidates = generate_candidates(m("09:00"), m("12:00"), 30)
    slots = filter_available(candidates, 60, [_reservation("10:00", 30)], [], m("12:00"))
    starts = _starts(slots)

    assert "09:00" in starts
    assert "09:30" not in starts
    assert "10:00" not in starts
    assert "10:30" in starts


def test_scenario_c_lunch_blackout():
    candidates = generate_candidates(m("08:00"), m("18:00"), 30)
    lunch = BlackoutWindow(resource_id=1, date=DAY, start_minutes=m("12:00"), end_minutes=m("13:00"))
    slots = filter_available(candidates, 60, [], [lunch], m("18:00"))

    for slot in slots:
        assert not (slot.start_minutes < lunch.end_minutes and slot.end_minutes > lunch.start_minutes)
    starts = _starts(slots)
    assert "11:00" in starts
    assert "13:00" in starts
    assert "11:30" not in starts
    assert "12:30" not in starts


def test_slot_ending_exactly_at_close_is_accepted():
    slots = filter_available([m("11:00")], 60, [], [], m("12:00"))
    assert _starts(slots) == ["11:00"]


def test_slot_ending_one_minute_past_close_is_rejected():
    assert filter_available([m("11:00")], 61, [], [], m("12:00")) == []


def test_today_cutoff_excludes_started_and_past_slots():
    candidates = generate_candidates(m("08:00"), m("19:00"), 30)
    slots = filter_available(candidates, 30, [], [], m("19:00"), now_minutes=m("09:05"))
    starts = _starts(slots)

    assert starts[0] == "09:30"
    assert not {"08:00", "08:30", "09:00"} & set(starts)


def test_cutoff_equal_to_start_is_excluded():
    slots = filter_available([m("09:00"), m("09:30")], 30, [], [], m("19:00"), now_minutes=m("09:00"))
    assert _starts(slots) == ["09:30"]


@pytest.mark.parametrize("status", [ReservationStatus.CANCELLED, ReservationStatus.COMPLETED])
def test_inactive_reservations_do_not_block(status):
    candidates = generate_candidates(m("09:00"), m("12:00"), 30)
    slots = filter_available(candidates, 60, [_reservation("10:00", 60, status)], [], m("12:00"))
    assert len(slots) == 5


def test_adjacent_reservation_does_not_overlap():
    # [09:00, 10:00) and [10:00, 11:00) only touch
    slots = filter_available([m("09:00")], 60, [_reservation("10:00", 60)], [], m("12:00"))
    assert _starts(slots) == ["09:00"]


def test_filter_is_deterministic():
    candidates = generate_candidates(m("08:00"), m("19:00"), 15)
    reservations = [_reservation("10:00", 45), _reservation("14:15", 30)]
    blackouts = [BlackoutWindow(1, DAY, m("12:00"), m("13:00"))]

    first = filter_available(candidates, 45, reservations, blackouts, m("19:00"), m("08:20"))
    second = filter_available(candidates, 45, reservations, blackouts, m("19:00"), m("08:20"))
    assert first == second
    assert [s.start_minutes for s in first] == sorted(s.start_minutes for s in first)


def test_suggest_alternatives_prefers_nearest_then_earlier():
    slots = [Slot(s, 60) for s in (m("08:00"), m("08:30"), m("09:00"), m("11:00"), m("11:30"), m("12:00"))]
    assert suggest_alternatives(slots, m("10:00"), limit=3) == [m("09:00"), m("11:00"), m("08:30")]


# ── compute_available_slots over the database ───────────────────────────


def test_compute_returns_grid_bounded_slots(db, make_professional, config):
    pid = make_professional(every_day(("09:00", "12:00")))
    slots = compute_available_slots(db, SlotRequest(pid, DAY, 60), config=config)

    assert _starts(slots) == ["09:00", "09:30", "10:00", "10:30", "11:00"]
    for slot in slots:
        assert m("09:00") <= slot.start_minutes
        assert slot.end_minutes <= m("12:00")


def test_compute_excludes_active_bookings(db, shop, make_professional, config):
    pid = make_professional(every_day(("09:00", "12:00")))
    db.add(Bookings(
        shop_id=shop.id, professional_id=pid, client_id="c1", booking_date=DAY.isoformat(),
        start_minutes=m("10:00"), duration_minutes=30, status="pending",
    ))
    db.add(Bookings(
        shop_id=shop.id, professional_id=pid, client_id="c2", booking_date=DAY.isoformat(),
        start_minutes=m("11:00"), duration_minutes=60, status="cancelled",
    ))
    db.commit()

    slots = compute_available_slots(db, SlotRequest(pid, DAY, 60), config=config)
    assert _starts(slots) == ["09:00", "10:30", "11:00"]


def test_compute_applies_cutoff_only_for_today(db, make_professional, config):
    pid = make_professional(every_day(("08:00", "19:00")))
    today = date.today()
    now = datetime.combine(today, time(9, 5))

    today_slots = compute_available_slots(db, SlotRequest(pid, today, 30), now=now, config=config)
    assert _starts(today_slots)[0] == "09:30"

    tomorrow = today + timedelta(days=1)
    tomorrow_slots = compute_available_slots(db, SlotRequest(pid, tomorrow, 30), now=now, config=config)
    assert _starts(tomorrow_slots)[0] == "08:00"


def test_compute_uses_professional_grid_step(db, make_professional, config):
    pid = make_professional(every_day(("09:00", "10:00")), slot_step_minutes=15)
    slots = compute_available_slots(db, SlotRequest(pid, DAY, 30), config=config)
    assert _starts(slots) == ["09:00", "09:15", "09:30"]


def test_compute_respects_time_blocks(db, make_professional, config):
    pid = make_professional(every_day(("08:00", "18:00")))
    db.add(TimeBlocks(
        professional_id=pid, title="Almoço", block_type="lunch", is_recurring=1,
        day_of_week=DAY.weekday(), start_time="12:00", end_time="13:00",
    ))
    db.add(TimeBlocks(
        professional_id=pid, title="Dentista", block_type="appointment", is_recurring=0,
        block_date=DAY.isoformat(), start_time="16:00", end_time="17:00",
    ))
    db.commit()

    starts = _starts(compute_available_slots(db, SlotRequest(pid, DAY, 60), config=config))
    assert "11:00" in starts
    assert not {"11:30", "12:00", "12:30"} & set(starts)
    assert not {"15:30", "16:00", "16:30"} & set(starts)
    assert "17:00" in starts


def test_split_schedule_gap_is_a_blackout(db, make_professional, config):
    pid = make_professional(every_day(("09:00", "12:00"), ("13:00", "15:00")))
    starts = _starts(compute_available_slots(db, SlotRequest(pid, DAY, 60), config=config))
    assert starts == ["09:00", "09:30", "10:00", "10:30", "11:00", "13:00", "13:30", "14:00"]


def test_day_off_override_closes_the_day(db, make_professional, config):
    pid = make_professional()
    db.add(CalendarOverrides(
        target_type="professional", target_id=pid, override_kind="day_off",
        date_start=DAY.isoformat(), date_end=DAY.isoformat(),
    ))
    db.commit()

    assert compute_available_slots(db, SlotRequest(pid, DAY, 30), config=config) == []


def test_shop_override_with_custom_hours(db, shop, make_professional, config):
    pid = make_professional()
    db.add(CalendarOverrides(
        target_type="shop", target_id=shop.id, override_kind="custom_hours", reason="10:00-12:00",
        date_start=(DAY - timedelta(days=1)).isoformat(), date_end=(DAY + timedelta(days=1)).isoformat(),
    ))
    db.commit()

    starts = _starts(compute_available_slots(db, SlotRequest(pid, DAY, 60), config=config))
    assert starts == ["10:00", "10:30", "11:00"]


def test_shop_schedule_used_when_professional_has_none(db, shop, make_professional, config):
    shop.work_schedule = json.dumps({"mon": {"start": "10:00", "end": "11:00"}, "tue": {"start": "10:00", "end": "11:00"},
                                     "wed": {"start": "10:00", "end": "11:00"}, "thu": {"start": "10:00", "end": "11:00"},
                                     "fri": {"start": "10:00", "end": "11:00"}, "sat": {"start": "10:00", "end": "11:00"},
                                     "sun": {"start": "10:00", "end": "11:00"}})
    db.commit()
    pid = make_professional(work_schedule="{}")

    starts = _starts(compute_available_slots(db, SlotRequest(pid, DAY, 30), config=config))
    assert starts == ["10:00", "10:30"]


def test_default_hours_are_closed_on_sunday(db, make_professional, config):
    pid = make_professional(work_schedule="{}")
    sunday = DAY + timedelta(days=(6 - DAY.weekday()))
    monday = sunday + timedelta(days=1)

    assert compute_available_slots(db, SlotRequest(pid, sunday, 30), config=config) == []
    starts = _starts(compute_available_slots(db, SlotRequest(pid, monday, 30), config=config))
    assert starts[0] == config.default_open
    assert starts[-1] == "18:30"


# ── Boundary validation ─────────────────────────────────────────────────


@pytest.mark.parametrize("duration", [0, -30])
def test_non_positive_duration_is_invalid(db, professional_id, config, duration):
    with pytest.raises(InvalidRequest):
        compute_available_slots(db, SlotRequest(professional_id, DAY, duration), config=config)


def test_unknown_professional_is_invalid(db, config):
    with pytest.raises(InvalidRequest):
        compute_available_slots(db, SlotRequest(9999, DAY, 30), config=config)


def test_inactive_professional_is_invalid(db, make_professional, config):
    pid = make_professional(active=False)
    with pytest.raises(InvalidRequest):
        compute_available_slots(db, SlotRequest(pid, DAY, 30), config=config)


def test_past_date_is_invalid(db, professional_id, config):
    with pytest.raises(InvalidRequest):
        compute_available_slots(db, SlotRequest(professional_id, date.today() - timedelta(days=1), 30), config=config)


def test_date_beyond_horizon_is_invalid(db, professional_id, config):
    too_far = date.today() + timedelta(days=config.horizon_days + 1)
    with pytest.raises(InvalidRequest):
        compute_available_slots(db, SlotRequest(professional_id, too_far, 30), config=config)


def test_store_failure_is_reported_as_unavailable(tmp_path, config):
    broken = sessionmaker(bind=make_engine(f"sqlite:///{tmp_path / 'missing' / 'booking.db'}"))()
    try:
        with pytest.raises(StoreUnavailable):
            compute_available_slots(broken, SlotRequest(1, DAY, 30), config=config)
    finally:
        broken.close()
