from types import SimpleNamespace

import pytest

from app.services.slot_generator import generate_slots
from app.utils.timeslots import intervals_overlap, to_minutes


def _day(start="09:00", end="13:00", break_start=None, break_end=None, is_working=True):
    return SimpleNamespace(
        is_working=is_working,
        start_time=start,
        end_time=end,
        break_start=break_start,
        break_end=break_end,
    )


def test_monday_with_break_yields_three_slots():
    slots = generate_slots(_day(break_start="11:00", break_end="11:30"), 60, 5)

    assert [(s.start_time, s.end_time) for s in slots] == [
        ("09:00", "10:00"),
        ("10:00", "11:00"),
        ("11:30", "12:30"),
    ]
    assert all(s.max_bookings == 5 and s.current_bookings == 0 and s.is_available for s in slots)


@pytest.mark.parametrize("duration", [15, 30, 45, 60, 90])
def test_slots_never_straddle_break_or_overlap(duration):
    day = _day("08:00", "19:00", "12:40", "13:25")
    slots = generate_slots(day, duration, 3)

    b_start, b_end = to_minutes("12:40"), to_minutes("13:25")
    bounds = [(to_minutes(s.start_time), to_minutes(s.end_time)) for s in slots]
    for start, end in bounds:
        assert end - start == duration
        assert not intervals_overlap(start, end, b_start, b_end)
        assert end <= to_minutes("19:00")
    for (_, prev_end), (next_start, _) in zip(bounds, bounds[1:]):
        assert prev_end <= next_start


def test_no_truncated_trailing_slot():
    slots = generate_slots(_day("09:00", "11:30"), 60, 1)
    assert [s.end_time for s in slots] == ["10:00", "11:00"]


def test_slot_touching_break_start_is_kept():
    slots = generate_slots(_day("10:00", "14:00", "12:00", "13:00"), 60, 1)
    assert [s.start_time for s in slots] == ["10:00", "11:00", "13:00"]


def test_midnight_break_start_is_honoured():
    slots = generate_slots(_day("00:00", "03:00", "00:00", "01:00"), 60, 1)
    assert [s.start_time for s in slots] == ["01:00", "02:00"]


def test_partial_break_is_ignored():
    slots = generate_slots(_day("09:00", "12:00", break_start="10:00"), 60, 1)
    assert len(slots) == 3


def test_non_working_day_yields_nothing():
    assert generate_slots(_day(is_working=False), 60, 5) == []


@pytest.mark.parametrize("duration, capacity", [(0, 5), (60, 0)])
def test_rejects_non_positive_parameters(duration, capacity):
    with pytest.raises(ValueError):
        generate_slots(_day(), duration, capacity)
