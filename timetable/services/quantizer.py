"""Service for splitting class intervals into fixed-size occupancy quanta."""

from __future__ import annotations

from timetable.config import settings
from timetable.domain.intervals import TimeInterval
from timetable.errors import ValidationError


def decompose(interval: TimeInterval, quantum: int | None = None) -> list[TimeInterval]:
    """Split *interval* into consecutive slots of *quantum* minutes.

    A trailing remainder shorter than the quantum is kept as the final slot,
    so the slots always concatenate back to exactly *interval*. Intervals no
    longer than one quantum are returned unchanged as a single slot.
    """
    if quantum is None:
        quantum = settings.default_quantum
    if isinstance(quantum, bool) or not isinstance(quantum, int) or quantum <= 0:
        raise ValidationError("quantum", f"quantum must be a positive integer, got {quantum!r}")

    if interval.duration <= quantum:
        return [interval]

    slots: list[TimeInterval] = []
    start = interval.start_minute
    while start < interval.end_minute:
        end = min(start + quantum, interval.end_minute)
        slots.append(TimeInterval(start_minute=start, end_minute=end))
        start = end
    return slots
