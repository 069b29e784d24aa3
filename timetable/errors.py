"""Error taxonomy for schedule operations.

Every error here is a per-operation outcome; none of them is fatal to the
process and a Schedule is never left half-mutated when one is raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timetable.domain.intervals import TimeInterval
    from timetable.domain.models import ClassEntry


class ScheduleError(Exception):
    """Base class for every error raised by the schedule core."""


class ValidationError(ScheduleError, ValueError):
    """Malformed input: bad time string, missing field, end <= start.

    Also a ``ValueError`` so pydantic validators surface it as a field error.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class TimeFormatError(ValidationError):
    def __init__(self, value: object, field: str = "time") -> None:
        super().__init__(field, f"invalid time format {value!r} (use HH:MM)")
        self.value = value


class ConflictError(ScheduleError):
    """The requested interval overlaps an entry already on the schedule."""

    def __init__(self, conflicting: ClassEntry, attempted: TimeInterval) -> None:
        super().__init__(
            f"{attempted} conflicts with {conflicting.subject} "
            f"({conflicting.day} {conflicting.interval}, id={conflicting.id})"
        )
        self.conflicting = conflicting
        self.attempted = attempted


class NotFoundError(ScheduleError):
    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class StaleScheduleError(ScheduleError):
    """A save lost the compare-and-swap race on the schedule version."""

    def __init__(self, owner_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"schedule for {owner_id} is stale (version {expected}, stored {actual})"
        )
        self.owner_id = owner_id
        self.expected = expected
        self.actual = actual
