"""Domain models for the personal timetable."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from timetable.config import settings
from timetable.domain.intervals import TimeInterval, parse_hhmm
from timetable.errors import ValidationError
from timetable.services.quantizer import decompose


class Weekday(StrEnum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"


DAY_ORDER: list[Weekday] = list(Weekday)


class ClassType(StrEnum):
    LECTURE = "Lecture"
    TUTORIAL = "Tutorial"
    LAB = "Lab"
    SEMINAR = "Seminar"
    PROJECT = "Project"


class WeekType(StrEnum):
    ALL = "All"
    ODD = "Odd"
    EVEN = "Even"


class TimeFormat(StrEnum):
    H12 = "12h"
    H24 = "24h"


class ActivityType(StrEnum):
    CLASS_ADDED = "class_added"
    CLASS_UPDATED = "class_updated"
    CLASS_REMOVED = "class_removed"
    CONFLICT_REJECTED = "conflict_rejected"
    PREFERENCES_UPDATED = "preferences_updated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_payload(model: type[ModelT], data: ModelT | dict[str, Any]) -> ModelT:
    """Coerce *data* into *model*, reporting failures as :class:`ValidationError`.

    The first failing field is named in the raised error. Errors that were
    already ours (e.g. :class:`TimeFormatError`) are re-raised as-is.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        original = first.get("ctx", {}).get("error")
        if isinstance(original, ValidationError):
            raise original from exc
        field = ".".join(str(part) for part in first["loc"]) or "interval"
        raise ValidationError(field, first["msg"]) from exc


# ---------------------------------------------------------------------------
# Class entries
# ---------------------------------------------------------------------------


class ClassEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    subject: str
    subject_code: str | None = None
    teacher: str | None = None
    room: str | None = None
    type: ClassType = ClassType.LECTURE
    day: Weekday
    week_type: WeekType = WeekType.ALL
    color: str = settings.default_color
    interval: TimeInterval
    duration_minutes: int
    occupied_slots: list[TimeInterval]
    is_multi_slot: bool = False

    @model_validator(mode="after")
    def _duration_matches_interval(self) -> ClassEntry:
        if self.duration_minutes != self.interval.duration:
            raise ValueError("duration_minutes must equal the interval length")
        return self

    @classmethod
    def build(cls, *, interval: TimeInterval, quantum: int, **fields: Any) -> ClassEntry:
        """Create an entry, deriving duration and occupancy from *interval*.

        This is the only place those three values are computed, so they can
        never drift apart when an entry is created or re-timed.
        """
        return cls(
            interval=interval,
            duration_minutes=interval.duration,
            occupied_slots=decompose(interval, quantum),
            is_multi_slot=interval.duration > quantum,
            **fields,
        )

    def requantize(self, quantum: int) -> ClassEntry:
        return self.model_copy(
            update={
                "occupied_slots": decompose(self.interval, quantum),
                "is_multi_slot": self.interval.duration > quantum,
            }
        )


DESCRIPTIVE_FIELDS = {
    "subject",
    "subject_code",
    "teacher",
    "room",
    "type",
    "day",
    "week_type",
    "color",
}


class ClassEntryInput(BaseModel):
    """Payload for adding a class to a schedule."""

    subject: str = Field(min_length=1)
    subject_code: str | None = None
    teacher: str | None = None
    room: str | None = None
    type: ClassType = ClassType.LECTURE
    day: Weekday
    week_type: WeekType = WeekType.ALL
    color: str | None = None
    start_time: str
    end_time: str

    @field_validator("subject", "subject_code", "teacher", "room", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _valid_time(cls, value: str, info: ValidationInfo) -> str:
        parse_hhmm(value, info.field_name)
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> ClassEntryInput:
        if parse_hhmm(self.end_time) <= parse_hhmm(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval.from_hhmm(self.start_time, self.end_time)


class ClassEntryPatch(BaseModel):
    """Partial update for an existing class; unset fields keep their value.

    Either end of the interval may be patched alone. ``subject_code``,
    ``teacher`` and ``room`` can be cleared by sending ``None``.
    """

    subject: str | None = Field(default=None, min_length=1)
    subject_code: str | None = None
    teacher: str | None = None
    room: str | None = None
    type: ClassType | None = None
    day: Weekday | None = None
    week_type: WeekType | None = None
    color: str | None = None
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("subject", "subject_code", "teacher", "room", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _valid_time(cls, value: str | None, info: ValidationInfo) -> str | None:
        if value is not None:
            parse_hhmm(value, info.field_name)
        return value

    def changes(self) -> dict[str, Any]:
        clearable = {"subject_code", "teacher", "room"}
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in clearable
        }


# ---------------------------------------------------------------------------
# Owner metadata & preferences
# ---------------------------------------------------------------------------


class Preferences(BaseModel):
    default_color: str = settings.default_color
    show_weekends: bool = False
    time_format: TimeFormat = TimeFormat.H24
    default_slot_duration: int = Field(default=settings.default_quantum, gt=0)


class PreferencesPatch(BaseModel):
    default_color: str | None = None
    show_weekends: bool | None = None
    time_format: TimeFormat | None = None
    default_slot_duration: int | None = Field(default=None, gt=0)


class OwnerDefaults(BaseModel):
    """Branch/year/term metadata supplied by the caller for a new schedule."""

    branch: str = Field(min_length=1)
    year: int = Field(ge=1)
    semester: int = Field(default=1, ge=1)
    academic_year: str = settings.academic_year


class ActivityEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    owner_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: ActivityType
    class_id: str | None = None
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class AvailabilityCheck(BaseModel):
    day: Weekday
    start_time: str
    end_time: str
    exclude_class_id: str | None = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval.from_hhmm(self.start_time, self.end_time)


class AvailabilityResult(BaseModel):
    day: Weekday
    start_time: str
    end_time: str
    is_available: bool


class DailySchedule(BaseModel):
    day: Weekday
    classes: list[ClassEntry]
    total_classes: int


class AvailableSlots(BaseModel):
    day: Weekday
    available_slots: list[TimeInterval]
    total_available: int
