"""Minute-of-day intervals and ``HH:MM`` parsing."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from timetable.errors import TimeFormatError, ValidationError

HHMM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str, field: str = "time") -> int:
    """Parse an ``HH:MM`` string into minutes since midnight.

    Single-digit hours (``9:05``) are accepted; anything else raises
    :class:`TimeFormatError`.
    """
    if not isinstance(value, str) or HHMM_PATTERN.fullmatch(value) is None:
        raise TimeFormatError(value, field)
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minute(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


class TimeInterval(BaseModel):
    """Half-open range ``[start_minute, end_minute)`` within a single day."""

    model_config = ConfigDict(frozen=True)

    start_minute: int = Field(ge=0, lt=MINUTES_PER_DAY)
    end_minute: int = Field(ge=0, lt=MINUTES_PER_DAY)

    @model_validator(mode="after")
    def _end_after_start(self) -> TimeInterval:
        if self.end_minute <= self.start_minute:
            raise ValueError("end_minute must be after start_minute")
        return self

    @classmethod
    def from_hhmm(cls, start: str, end: str) -> TimeInterval:
        start_minute = parse_hhmm(start, "start_time")
        end_minute = parse_hhmm(end, "end_time")
        if end_minute <= start_minute:
            raise ValidationError("end_time", "end time must be after start time")
        return cls(start_minute=start_minute, end_minute=end_minute)

    @computed_field
    @property
    def start_time(self) -> str:
        return format_minute(self.start_minute)

    @computed_field
    @property
    def end_time(self) -> str:
        return format_minute(self.end_minute)

    @property
    def duration(self) -> int:
        return self.end_minute - self.start_minute

    def overlaps(self, other: TimeInterval) -> bool:
        """Half-open overlap: intervals that only touch (end == start) do not overlap."""
        return self.start_minute < other.end_minute and other.start_minute < self.end_minute

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"
