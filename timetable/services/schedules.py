"""Service for running schedule operations against a ScheduleStore.

Every write is a load-mutate-save cycle. The cycle is serialised per owner
with a lock, and the store's version check catches writers that bypass this
service; a stale save is retried on a fresh snapshot.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from timetable.config import settings
from timetable.domain.bus import EventBus
from timetable.domain.events import (
    ClassAdded,
    ClassRemoved,
    ClassUpdated,
    ConflictRejected,
    PreferencesUpdated,
)
from timetable.domain.intervals import TimeInterval
from timetable.domain.models import (
    ClassEntry,
    ClassEntryInput,
    ClassEntryPatch,
    OwnerDefaults,
    Preferences,
    PreferencesPatch,
    Weekday,
    validate_payload,
)
from timetable.domain.schedule import Schedule
from timetable.errors import ConflictError, NotFoundError, StaleScheduleError
from timetable.repos.memory import ScheduleStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScheduleService:
    def __init__(
        self,
        store: ScheduleStore,
        bus: EventBus | None = None,
        save_retries: int | None = None,
    ) -> None:
        self.store = store
        self.bus = bus or EventBus()
        self.save_retries = settings.save_retries if save_retries is None else save_retries
        # owner id -> [lock, holders]; an entry lives only while someone holds or waits on it
        self._owner_locks: dict[str, list[Any]] = {}
        self._owner_locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_schedule(self, owner_id: str) -> Schedule:
        return self.store.load(owner_id)

    def get_or_create(self, owner_id: str, defaults: OwnerDefaults) -> Schedule:
        """Return the owner's schedule, creating an empty one from *defaults*."""
        schedule, _ = self.ensure_schedule(owner_id, defaults)
        return schedule

    def ensure_schedule(self, owner_id: str, defaults: OwnerDefaults) -> tuple[Schedule, bool]:
        """Like :meth:`get_or_create`, also reporting whether it was created."""
        with self._owner_lock(owner_id):
            try:
                return self.store.load(owner_id), False
            except NotFoundError:
                schedule = Schedule.create(owner_id, defaults)
                self.store.save(schedule)
                logger.info(
                    "Created schedule for %s (%s, year %d)",
                    owner_id,
                    defaults.branch,
                    defaults.year,
                )
                return schedule, True

    def get_classes_for_day(self, owner_id: str, day: Weekday | str) -> list[ClassEntry]:
        return self.store.load(owner_id).get_classes_for_day(day)

    def get_sorted_classes(self, owner_id: str) -> list[ClassEntry]:
        return self.store.load(owner_id).get_sorted_classes()

    def is_time_slot_available(
        self,
        owner_id: str,
        day: Weekday | str,
        interval: TimeInterval,
        exclude_class_id: str | None = None,
    ) -> bool:
        return self.store.load(owner_id).is_time_slot_available(day, interval, exclude_class_id)

    def get_available_time_slots(
        self,
        owner_id: str,
        day: Weekday | str,
        start_hour: int = 8,
        end_hour: int = 18,
        quantum: int | None = None,
        accept_coarser: bool = False,
    ) -> list[TimeInterval]:
        return self.store.load(owner_id).get_available_time_slots(
            day, start_hour, end_hour, quantum=quantum, accept_coarser=accept_coarser
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_class(self, owner_id: str, candidate: ClassEntryInput | dict[str, Any]) -> ClassEntry:
        candidate = validate_payload(ClassEntryInput, candidate)
        try:
            entry = self._mutate(owner_id, lambda schedule: schedule.add_class(candidate))
        except ConflictError as exc:
            self._publish_conflict(owner_id, exc)
            raise

        self.bus.publish(
            ClassAdded(
                owner_id=owner_id,
                class_id=entry.id,
                day=entry.day,
                start_time=entry.interval.start_time,
                end_time=entry.interval.end_time,
            )
        )
        return entry

    def update_class(
        self,
        owner_id: str,
        class_id: str,
        patch: ClassEntryPatch | dict[str, Any],
    ) -> ClassEntry:
        patch = validate_payload(ClassEntryPatch, patch)
        try:
            entry = self._mutate(owner_id, lambda schedule: schedule.update_class(class_id, patch))
        except ConflictError as exc:
            self._publish_conflict(owner_id, exc, class_id=class_id)
            raise

        self.bus.publish(
            ClassUpdated(
                owner_id=owner_id, class_id=class_id, changed_fields=sorted(patch.changes())
            )
        )
        return entry

    def remove_class(self, owner_id: str, class_id: str) -> bool:
        removed = self._mutate(owner_id, lambda schedule: schedule.remove_class(class_id))
        if removed:
            self.bus.publish(ClassRemoved(owner_id=owner_id, class_id=class_id))
        return removed

    def update_preferences(
        self, owner_id: str, patch: PreferencesPatch | dict[str, Any]
    ) -> Preferences:
        patch = validate_payload(PreferencesPatch, patch)
        preferences = self._mutate(owner_id, lambda schedule: schedule.update_preferences(patch))
        self.bus.publish(
            PreferencesUpdated(
                owner_id=owner_id,
                changed_fields=sorted(patch.model_dump(exclude_unset=True, exclude_none=True)),
            )
        )
        return preferences

    # ------------------------------------------------------------------

    @contextmanager
    def _owner_lock(self, owner_id: str) -> Iterator[None]:
        with self._owner_locks_guard:
            slot = self._owner_locks.setdefault(owner_id, [threading.Lock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._owner_locks_guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._owner_locks[owner_id]

    def _mutate(self, owner_id: str, operation: Callable[[Schedule], T]) -> T:
        """Run *operation* on a fresh snapshot and save it, retrying stale saves."""
        with self._owner_lock(owner_id):
            attempt = 0
            while True:
                schedule = self.store.load(owner_id)
                result = operation(schedule)
                try:
                    self.store.save(schedule)
                    return result
                except StaleScheduleError:
                    attempt += 1
                    if attempt > self.save_retries:
                        raise
                    logger.warning(
                        "Stale save for %s, retrying (%d/%d)", owner_id, attempt, self.save_retries
                    )

    def _publish_conflict(
        self,
        owner_id: str,
        exc: ConflictError,
        class_id: str | None = None,
    ) -> None:
        self.bus.publish(
            ConflictRejected(
                owner_id=owner_id,
                day=exc.conflicting.day,
                start_time=exc.attempted.start_time,
                end_time=exc.attempted.end_time,
                conflicting_class_id=exc.conflicting.id,
                class_id=class_id,
            )
        )
