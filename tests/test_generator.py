import pytest

from booking_core.services.slots import generate_candidates


def test_grid_starts_at_open_and_stays_before_close():
    assert generate_candidates(540, 720, 30) == [540, 570, 600, 630, 660, 690]


def test_last_start_may_be_closer_than_one_step_to_close():
    # 08:00–09:10 with 30 min grid: 09:00 is still a candidate
    assert generate_candidates(480, 550, 30) == [480, 510, 540]


def test_empty_when_open_not_before_close():
    assert generate_candidates(600, 600, 30) == []
    assert generate_candidates(700, 600, 30) == []


def test_is_restartable():
    assert generate_candidates(480, 1140, 15) == generate_candidates(480, 1140, 15)


def test_rejects_non_positive_step():
    with pytest.raises(ValueError):
        generate_candidates(480, 1140, 0)
