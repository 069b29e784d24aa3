"""Service for detecting time conflicts between class entries."""

from __future__ import annotations

from itertools import combinations

from timetable.domain.intervals import TimeInterval
from timetable.domain.models import ClassEntry


def find_conflicts(
    interval: TimeInterval,
    existing_entries: list[ClassEntry],
    exclude_id: str | None = None,
) -> list[ClassEntry]:
    """Return existing entries whose interval overlaps *interval*.

    Overlap rule: conflict if start < existing.end AND existing.start < end.
    Exact boundary touches (end == start) are NOT considered conflicts. The
    entry with id *exclude_id* is skipped so an entry never conflicts with
    itself while being re-timed. Callers pass entries for a single day.
    """
    return [
        entry
        for entry in existing_entries
        if entry.id != exclude_id and interval.overlaps(entry.interval)
    ]


def find_overlapping_pairs(entries: list[ClassEntry]) -> list[tuple[ClassEntry, ClassEntry]]:
    """Return every pair of same-day entries whose intervals overlap."""
    return [
        (a, b)
        for a, b in combinations(entries, 2)
        if a.day == b.day and a.interval.overlaps(b.interval)
    ]
