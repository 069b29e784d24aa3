"""Schedule store contract and in-memory repositories."""

from __future__ import annotations

import threading
from collections import deque
from typing import Protocol

from timetable.config import settings
from timetable.domain.models import ActivityEntry
from timetable.domain.schedule import Schedule
from timetable.errors import NotFoundError, StaleScheduleError


class ScheduleStore(Protocol):
    """Load/save contract for persisting one Schedule per owner.

    ``save`` must reject a schedule whose ``version`` no longer matches the
    stored one with :class:`StaleScheduleError`, and bump ``version`` on
    success.
    """

    def load(self, owner_id: str) -> Schedule: ...

    def save(self, schedule: Schedule) -> None: ...


class InMemoryScheduleStore:
    """Dict-backed ScheduleStore keyed by owner id.

    Stores and hands out deep copies, so a loaded schedule is a private
    snapshot until it is saved back.
    """

    def __init__(self) -> None:
        self._store: dict[str, Schedule] = {}
        self._lock = threading.Lock()

    def load(self, owner_id: str) -> Schedule:
        with self._lock:
            stored = self._store.get(owner_id)
            if stored is None:
                raise NotFoundError("schedule", owner_id)
            return stored.model_copy(deep=True)

    def save(self, schedule: Schedule) -> None:
        with self._lock:
            stored = self._store.get(schedule.owner_id)
            current_version = stored.version if stored is not None else 0
            if schedule.version != current_version:
                raise StaleScheduleError(schedule.owner_id, schedule.version, current_version)
            schedule.version += 1
            self._store[schedule.owner_id] = schedule.model_copy(deep=True)

    def exists(self, owner_id: str) -> bool:
        with self._lock:
            return owner_id in self._store

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


class ActivityRepository:
    """Per-owner activity log holding the newest *limit* entries for each owner.

    Older entries are dropped once an owner exceeds the limit.
    """

    def __init__(self, limit: int | None = None) -> None:
        self.limit = settings.activity_limit if limit is None else limit
        self._entries: dict[str, deque[ActivityEntry]] = {}
        self._lock = threading.Lock()

    def add(self, entry: ActivityEntry) -> None:
        with self._lock:
            log = self._entries.setdefault(entry.owner_id, deque(maxlen=self.limit))
            log.append(entry)

    def list_for_owner(self, owner_id: str) -> list[ActivityEntry]:
        with self._lock:
            entries = list(self._entries.get(owner_id, ()))
        return sorted(entries, key=lambda e: e.timestamp)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
