"""Tests for decomposing intervals into occupancy quanta."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from timetable.domain.intervals import MINUTES_PER_DAY, TimeInterval
from timetable.errors import ValidationError
from timetable.services.quantizer import decompose


def _iv(start: str, end: str) -> TimeInterval:
    return TimeInterval.from_hhmm(start, end)


def test_remainder_slot_is_kept():
    """14:00-16:00 at 50 minutes is two full quanta plus a 20-minute remainder."""
    slots = decompose(_iv("14:00", "16:00"), 50)
    assert [str(s) for s in slots] == ["14:00-14:50", "14:50-15:40", "15:40-16:00"]
    assert slots[-1].duration == 20


def test_exact_multiple_has_no_remainder():
    slots = decompose(_iv("08:00", "09:40"), 50)
    assert [str(s) for s in slots] == ["08:00-08:50", "08:50-09:40"]


def test_short_interval_is_returned_unchanged():
    interval = _iv("09:00", "09:30")
    assert decompose(interval, 50) == [interval]


def test_single_quantum_is_returned_unchanged():
    interval = _iv("09:00", "09:50")
    assert decompose(interval, 50) == [interval]


def test_default_quantum_is_fifty_minutes():
    assert len(decompose(_iv("08:00", "10:30"))) == 3


@pytest.mark.parametrize("quantum", [0, -5, 2.5, True])
def test_rejects_non_positive_quantum(quantum):
    with pytest.raises(ValidationError) as excinfo:
        decompose(_iv("08:00", "09:00"), quantum)
    assert excinfo.value.field == "quantum"


@st.composite
def intervals(draw):
    start = draw(st.integers(min_value=0, max_value=MINUTES_PER_DAY - 2))
    end = draw(st.integers(min_value=start + 1, max_value=MINUTES_PER_DAY - 1))
    return TimeInterval(start_minute=start, end_minute=end)


@given(interval=intervals(), quantum=st.integers(min_value=1, max_value=240))
def test_slots_concatenate_back_to_interval(interval, quantum):
    slots = decompose(interval, quantum)

    assert slots[0].start_minute == interval.start_minute
    assert slots[-1].end_minute == interval.end_minute
    for previous, current in zip(slots, slots[1:]):
        assert previous.end_minute == current.start_minute
    assert all(slot.duration == quantum for slot in slots[:-1])
    assert 0 < slots[-1].duration <= quantum
