"""Tests for adding, updating and removing classes on a Schedule."""

from __future__ import annotations

import pytest

from timetable.domain.intervals import TimeInterval
from timetable.domain.models import (
    ClassEntry,
    ClassEntryInput,
    ClassType,
    OwnerDefaults,
    Weekday,
    WeekType,
)
from timetable.domain.schedule import Schedule
from timetable.errors import ConflictError, NotFoundError, TimeFormatError, ValidationError


@pytest.fixture()
def schedule() -> Schedule:
    return Schedule.create("owner-1", OwnerDefaults(branch="CSE", year=2))


def _input(day: str = "Monday", start: str = "09:00", end: str = "09:50", **overrides) -> dict:
    data = dict(subject="Algorithms", day=day, start_time=start, end_time=end)
    data.update(overrides)
    return data


def _iv(start: str, end: str) -> TimeInterval:
    return TimeInterval.from_hhmm(start, end)


# ---------------------------------------------------------------------------
# add_class
# ---------------------------------------------------------------------------


def test_create_uses_owner_defaults(schedule):
    assert schedule.owner_id == "owner-1"
    assert schedule.branch == "CSE"
    assert schedule.year == 2
    assert schedule.semester == 1
    assert schedule.entries == []
    assert schedule.quantum == 50


def test_back_to_back_classes_are_both_accepted(schedule):
    first = schedule.add_class(_input(start="09:00", end="09:50"))
    second = schedule.add_class(_input(start="10:00", end="10:50", subject="Databases"))

    assert [e.id for e in schedule.get_sorted_classes()] == [first.id, second.id]


def test_overlapping_class_is_rejected(schedule):
    existing = schedule.add_class(_input(start="09:00", end="09:50"))

    with pytest.raises(ConflictError) as excinfo:
        schedule.add_class(_input(start="09:30", end="10:20", subject="Databases"))

    assert excinfo.value.conflicting.id == existing.id
    assert str(excinfo.value.attempted) == "09:30-10:20"
    assert len(schedule.entries) == 1


def test_same_time_on_another_day_is_fine(schedule):
    schedule.add_class(_input(day="Monday"))
    schedule.add_class(_input(day="Tuesday"))
    assert len(schedule.entries) == 2


def test_add_computes_duration_and_occupancy(schedule):
    entry = schedule.add_class(_input(start="14:00", end="16:00"))

    assert entry.duration_minutes == 120
    assert entry.is_multi_slot is True
    assert [str(s) for s in entry.occupied_slots] == [
        "14:00-14:50",
        "14:50-15:40",
        "15:40-16:00",
    ]


def test_add_applies_defaults(schedule):
    entry = schedule.add_class(_input(subject="  Compilers  "))

    assert entry.subject == "Compilers"
    assert entry.type == ClassType.LECTURE
    assert entry.week_type == WeekType.ALL
    assert entry.color == schedule.preferences.default_color
    assert entry.is_multi_slot is False


def test_add_accepts_validated_input_model(schedule):
    entry = schedule.add_class(ClassEntryInput(**_input(type="Lab", color="#10B981")))
    assert entry.type == ClassType.LAB
    assert entry.color == "#10B981"


@pytest.mark.parametrize(
    "payload, field",
    [
        (_input(subject=""), "subject"),
        (_input(subject="   "), "subject"),
        ({"day": "Monday", "start_time": "09:00", "end_time": "09:50"}, "subject"),
        (_input(day="Sunday"), "day"),
        (_input(type="Workshop"), "type"),
        (_input(start="10:00", end="09:00"), "interval"),
        (_input(start="10:00", end="10:00"), "interval"),
    ],
)
def test_add_rejects_invalid_payload(schedule, payload, field):
    with pytest.raises(ValidationError) as excinfo:
        schedule.add_class(payload)
    assert excinfo.value.field == field
    assert schedule.entries == []


def test_add_rejects_malformed_time(schedule):
    with pytest.raises(TimeFormatError) as excinfo:
        schedule.add_class(_input(start="9.00"))
    assert excinfo.value.field == "start_time"


# ---------------------------------------------------------------------------
# update_class
# ---------------------------------------------------------------------------


def test_update_descriptive_fields_only(schedule):
    entry = schedule.add_class(_input(room="A-101"))
    updated = schedule.update_class(entry.id, {"room": "B-204", "teacher": "Dr. Rao"})

    assert updated.id == entry.id
    assert updated.room == "B-204"
    assert updated.teacher == "Dr. Rao"
    assert updated.interval == entry.interval


def test_update_can_clear_optional_text(schedule):
    entry = schedule.add_class(_input(room="A-101"))
    updated = schedule.update_class(entry.id, {"room": None})
    assert updated.room is None


def test_update_retime_recomputes_occupancy(schedule):
    entry = schedule.add_class(_input(start="09:00", end="09:50"))
    updated = schedule.update_class(entry.id, {"end_time": "11:00"})

    assert str(updated.interval) == "09:00-11:00"
    assert updated.duration_minutes == 120
    assert len(updated.occupied_slots) == 3
    assert updated.is_multi_slot is True


def test_update_does_not_conflict_with_itself(schedule):
    entry = schedule.add_class(_input(start="09:00", end="10:00"))
    updated = schedule.update_class(entry.id, {"start_time": "09:30", "end_time": "10:30"})
    assert str(updated.interval) == "09:30-10:30"


def test_update_conflict_leaves_state_unchanged(schedule):
    first = schedule.add_class(_input(start="09:00", end="09:50"))
    second = schedule.add_class(_input(start="10:00", end="10:50", subject="Databases"))
    before = schedule.model_dump()

    with pytest.raises(ConflictError) as excinfo:
        schedule.update_class(second.id, {"start_time": "09:30", "room": "Z-1"})

    assert excinfo.value.conflicting.id == first.id
    assert schedule.model_dump() == before


def test_update_moving_day_checks_target_day(schedule):
    tuesday = schedule.add_class(_input(day="Tuesday", start="09:00", end="10:00"))
    monday = schedule.add_class(_input(day="Monday", start="09:30", end="10:30"))

    with pytest.raises(ConflictError) as excinfo:
        schedule.update_class(monday.id, {"day": "Tuesday"})
    assert excinfo.value.conflicting.id == tuesday.id

    moved = schedule.update_class(monday.id, {"day": "Wednesday"})
    assert moved.day == Weekday.WEDNESDAY


def test_update_rejects_inverted_interval(schedule):
    entry = schedule.add_class(_input(start="09:00", end="09:50"))
    with pytest.raises(ValidationError) as excinfo:
        schedule.update_class(entry.id, {"start_time": "10:00"})
    assert excinfo.value.field == "end_time"
    assert schedule.get_class(entry.id) == entry


def test_update_unknown_class(schedule):
    with pytest.raises(NotFoundError):
        schedule.update_class("missing", {"room": "X"})


# ---------------------------------------------------------------------------
# remove_class & ordering
# ---------------------------------------------------------------------------


def test_remove_is_idempotent(schedule):
    entry = schedule.add_class(_input())
    assert schedule.remove_class(entry.id) is True
    assert schedule.remove_class(entry.id) is False
    assert schedule.entries == []


def test_removed_slot_can_be_reused(schedule):
    entry = schedule.add_class(_input(start="09:00", end="09:50"))
    schedule.remove_class(entry.id)
    schedule.add_class(_input(start="09:00", end="09:50"))
    assert len(schedule.entries) == 1


def test_sorted_classes_by_day_then_start(schedule):
    schedule.add_class(_input(day="Wednesday", start="08:00", end="08:50", subject="W"))
    schedule.add_class(_input(day="Monday", start="11:00", end="11:50", subject="M2"))
    schedule.add_class(_input(day="Saturday", start="07:00", end="07:50", subject="S"))
    schedule.add_class(_input(day="Monday", start="9:00", end="9:50", subject="M1"))

    assert [e.subject for e in schedule.get_sorted_classes()] == ["M1", "M2", "W", "S"]


def test_classes_for_day_are_chronological(schedule):
    schedule.add_class(_input(start="13:00", end="13:50", subject="late"))
    schedule.add_class(_input(start="08:00", end="08:50", subject="early"))
    schedule.add_class(_input(day="Friday", subject="other"))

    assert [e.subject for e in schedule.get_classes_for_day("Monday")] == ["early", "late"]
    assert schedule.get_classes_for_day(Weekday.THURSDAY) == []


def test_classes_for_unknown_day(schedule):
    with pytest.raises(ValidationError):
        schedule.get_classes_for_day("Funday")


# ---------------------------------------------------------------------------
# is_time_slot_available
# ---------------------------------------------------------------------------


def test_time_slot_availability_query(schedule):
    entry = schedule.add_class(_input(start="10:00", end="10:30"))

    assert schedule.is_time_slot_available("Monday", _iv("09:00", "10:00"))
    assert schedule.is_time_slot_available("Monday", _iv("10:30", "11:00"))
    assert not schedule.is_time_slot_available("Monday", _iv("09:59", "10:01"))
    assert schedule.is_time_slot_available("Monday", _iv("09:59", "10:01"), entry.id)
    assert schedule.is_time_slot_available("Tuesday", _iv("10:00", "10:30"))


def test_schedule_rejects_overlapping_entries_on_load():
    a = ClassEntry.build(interval=_iv("09:00", "10:00"), quantum=50, subject="A", day="Monday")
    b = ClassEntry.build(interval=_iv("09:30", "10:30"), quantum=50, subject="B", day="Monday")
    with pytest.raises(ValueError):
        Schedule(owner_id="o", branch="CSE", year=1, entries=[a, b])
