"""Domain events emitted when a schedule changes."""

from __future__ import annotations

from pydantic import BaseModel

from timetable.domain.models import Weekday


class ClassAdded(BaseModel):
    """Fired after a new class has been saved to an owner's schedule."""

    owner_id: str
    class_id: str
    day: Weekday
    start_time: str
    end_time: str


class ClassUpdated(BaseModel):
    owner_id: str
    class_id: str
    changed_fields: list[str]


class ClassRemoved(BaseModel):
    owner_id: str
    class_id: str


class ConflictRejected(BaseModel):
    """Fired when an add or update was refused because of an overlap."""

    owner_id: str
    day: Weekday
    start_time: str
    end_time: str
    conflicting_class_id: str
    class_id: str | None = None


class PreferencesUpdated(BaseModel):
    owner_id: str
    changed_fields: list[str]
