"""The per-owner weekly schedule: conflict checks and free-slot search."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, model_validator

from timetable.config import settings
from timetable.domain.intervals import MINUTES_PER_DAY, TimeInterval
from timetable.domain.models import (
    DAY_ORDER,
    DESCRIPTIVE_FIELDS,
    ClassEntry,
    ClassEntryInput,
    ClassEntryPatch,
    OwnerDefaults,
    Preferences,
    PreferencesPatch,
    Weekday,
    validate_payload,
)
from timetable.errors import ConflictError, NotFoundError, ValidationError
from timetable.services.conflicts import find_conflicts, find_overlapping_pairs
from timetable.services.quantizer import decompose

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_day(day: Weekday | str) -> Weekday:
    try:
        return Weekday(day)
    except ValueError as exc:
        raise ValidationError("day", f"unknown day {day!r}") from exc


class Schedule(BaseModel):
    """All class entries for one owner.

    Invariant: no two entries on the same day have overlapping intervals.
    Every mutating method runs all of its checks before touching ``entries``,
    so a rejected call leaves the schedule exactly as it was.
    """

    owner_id: str
    branch: str
    year: int
    semester: int = 1
    academic_year: str = settings.academic_year
    is_active: bool = True
    preferences: Preferences = Field(default_factory=Preferences)
    entries: list[ClassEntry] = Field(default_factory=list)
    version: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _no_overlapping_entries(self) -> Schedule:
        pairs = find_overlapping_pairs(self.entries)
        if pairs:
            a, b = pairs[0]
            raise ValueError(f"entries {a.id} and {b.id} overlap on {a.day}")
        return self

    @classmethod
    def create(cls, owner_id: str, defaults: OwnerDefaults) -> Schedule:
        return cls(owner_id=owner_id, **defaults.model_dump())

    @property
    def quantum(self) -> int:
        return self.preferences.default_slot_duration

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_class(self, class_id: str) -> ClassEntry:
        return self.entries[self._index_of(class_id)]

    def get_classes_for_day(self, day: Weekday | str) -> list[ClassEntry]:
        day = _coerce_day(day)
        return sorted(
            (entry for entry in self.entries if entry.day == day),
            key=lambda entry: entry.interval.start_minute,
        )

    def get_sorted_classes(self) -> list[ClassEntry]:
        """Return every entry ordered Monday..Saturday, then by start time."""
        return sorted(
            self.entries,
            key=lambda entry: (DAY_ORDER.index(entry.day), entry.interval.start_minute),
        )

    def find_conflict(
        self,
        day: Weekday | str,
        interval: TimeInterval,
        exclude_class_id: str | None = None,
    ) -> ClassEntry | None:
        conflicts = find_conflicts(interval, self.get_classes_for_day(day), exclude_class_id)
        return conflicts[0] if conflicts else None

    def is_time_slot_available(
        self,
        day: Weekday | str,
        interval: TimeInterval,
        exclude_class_id: str | None = None,
    ) -> bool:
        return self.find_conflict(day, interval, exclude_class_id) is None

    def get_available_time_slots(
        self,
        day: Weekday | str,
        start_hour: int = 8,
        end_hour: int = 18,
        quantum: int | None = None,
        accept_coarser: bool = False,
    ) -> list[TimeInterval]:
        """Return the grid slots in ``[start_hour, end_hour)`` that no class touches.

        The grid is cut at *quantum* minutes from ``start_hour`` with a
        shorter final slot when the window is not a multiple of the quantum.
        Each grid slot is tested against the occupied slots of the day's
        classes. Entries are decomposed at the schedule quantum, so querying
        with a different quantum is refused unless *accept_coarser* is set.
        """
        if quantum is None:
            quantum = self.quantum
        elif quantum != self.quantum and not accept_coarser:
            raise ValidationError(
                "quantum",
                f"grid quantum {quantum} differs from schedule quantum {self.quantum}",
            )
        last_hour = (MINUTES_PER_DAY - 1) // 60
        if not 0 <= start_hour < end_hour <= last_hour:
            raise ValidationError(
                "hours", f"expected 0 <= start_hour < end_hour <= {last_hour}"
            )

        window = TimeInterval(start_minute=start_hour * 60, end_minute=end_hour * 60)
        grid = decompose(window, quantum)
        occupied = [
            slot for entry in self.get_classes_for_day(day) for slot in entry.occupied_slots
        ]
        return [slot for slot in grid if not any(slot.overlaps(busy) for busy in occupied)]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_class(self, candidate: ClassEntryInput | dict[str, Any]) -> ClassEntry:
        candidate = validate_payload(ClassEntryInput, candidate)
        interval = candidate.interval

        conflict = self.find_conflict(candidate.day, interval)
        if conflict is not None:
            logger.info(
                "Rejected %s %s for %s: conflicts with %s (%s)",
                candidate.day,
                interval,
                self.owner_id,
                conflict.subject,
                conflict.id,
            )
            raise ConflictError(conflict, interval)

        fields = candidate.model_dump(include=DESCRIPTIVE_FIELDS)
        fields["color"] = candidate.color or self.preferences.default_color
        entry = ClassEntry.build(interval=interval, quantum=self.quantum, **fields)
        self.entries.append(entry)
        self._touch()
        return entry

    def update_class(self, class_id: str, patch: ClassEntryPatch | dict[str, Any]) -> ClassEntry:
        patch = validate_payload(ClassEntryPatch, patch)
        index = self._index_of(class_id)
        current = self.entries[index]
        changes = patch.changes()

        start_time = changes.pop("start_time", current.interval.start_time)
        end_time = changes.pop("end_time", current.interval.end_time)
        interval = TimeInterval.from_hhmm(start_time, end_time)
        day = changes.get("day", current.day)

        if day != current.day or interval != current.interval:
            conflict = self.find_conflict(day, interval, exclude_class_id=class_id)
            if conflict is not None:
                logger.info(
                    "Rejected move of %s to %s %s for %s: conflicts with %s (%s)",
                    class_id,
                    day,
                    interval,
                    self.owner_id,
                    conflict.subject,
                    conflict.id,
                )
                raise ConflictError(conflict, interval)

        fields = current.model_dump(include=DESCRIPTIVE_FIELDS)
        fields.update(changes)
        updated = ClassEntry.build(
            id=current.id, interval=interval, quantum=self.quantum, **fields
        )
        self.entries[index] = updated
        self._touch()
        return updated

    def remove_class(self, class_id: str) -> bool:
        remaining = [entry for entry in self.entries if entry.id != class_id]
        if len(remaining) == len(self.entries):
            return False
        self.entries = remaining
        self._touch()
        return True

    def update_preferences(self, patch: PreferencesPatch | dict[str, Any]) -> Preferences:
        """Apply *patch*; a new slot duration re-decomposes every entry."""
        patch = validate_payload(PreferencesPatch, patch)
        changes = {k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None}
        preferences = self.preferences.model_copy(update=changes)
        if preferences.default_slot_duration != self.quantum:
            self.entries = [
                entry.requantize(preferences.default_slot_duration) for entry in self.entries
            ]
        self.preferences = preferences
        self._touch()
        return preferences

    # ------------------------------------------------------------------

    def _index_of(self, class_id: str) -> int:
        for index, entry in enumerate(self.entries):
            if entry.id == class_id:
                return index
        raise NotFoundError("class", class_id)

    def _touch(self) -> None:
        self.updated_at = _utcnow()
