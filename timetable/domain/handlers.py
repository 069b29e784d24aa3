"""Domain event handlers that keep the per-owner activity log."""

from __future__ import annotations

import logging

from timetable.domain.bus import EventBus
from timetable.domain.events import (
    ClassAdded,
    ClassRemoved,
    ClassUpdated,
    ConflictRejected,
    PreferencesUpdated,
)
from timetable.domain.models import ActivityEntry, ActivityType
from timetable.repos.memory import ActivityRepository

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Subscribes to every schedule event and records it as an ActivityEntry."""

    def __init__(self, bus: EventBus, activity_repo: ActivityRepository) -> None:
        self.bus = bus
        self.activity_repo = activity_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(ClassAdded, self.on_class_added)
        self.bus.subscribe(ClassUpdated, self.on_class_updated)
        self.bus.subscribe(ClassRemoved, self.on_class_removed)
        self.bus.subscribe(ConflictRejected, self.on_conflict_rejected)
        self.bus.subscribe(PreferencesUpdated, self.on_preferences_updated)

    def on_class_added(self, event: ClassAdded) -> None:
        logger.info(
            "Class %s added for %s on %s %s-%s",
            event.class_id,
            event.owner_id,
            event.day,
            event.start_time,
            event.end_time,
        )
        self.activity_repo.add(
            ActivityEntry(
                owner_id=event.owner_id,
                type=ActivityType.CLASS_ADDED,
                class_id=event.class_id,
                payload={
                    "day": str(event.day),
                    "start_time": event.start_time,
                    "end_time": event.end_time,
                },
            )
        )

    def on_class_updated(self, event: ClassUpdated) -> None:
        logger.info(
            "Class %s updated for %s: %s", event.class_id, event.owner_id, event.changed_fields
        )
        self.activity_repo.add(
            ActivityEntry(
                owner_id=event.owner_id,
                type=ActivityType.CLASS_UPDATED,
                class_id=event.class_id,
                payload={"changed_fields": event.changed_fields},
            )
        )

    def on_class_removed(self, event: ClassRemoved) -> None:
        logger.info("Class %s removed for %s", event.class_id, event.owner_id)
        self.activity_repo.add(
            ActivityEntry(
                owner_id=event.owner_id,
                type=ActivityType.CLASS_REMOVED,
                class_id=event.class_id,
            )
        )

    def on_conflict_rejected(self, event: ConflictRejected) -> None:
        self.activity_repo.add(
            ActivityEntry(
                owner_id=event.owner_id,
                type=ActivityType.CONFLICT_REJECTED,
                class_id=event.class_id,
                payload={
                    "day": str(event.day),
                    "start_time": event.start_time,
                    "end_time": event.end_time,
                    "conflicting_class_id": event.conflicting_class_id,
                },
            )
        )

    def on_preferences_updated(self, event: PreferencesUpdated) -> None:
        logger.info("Preferences updated for %s: %s", event.owner_id, event.changed_fields)
        self.activity_repo.add(
            ActivityEntry(
                owner_id=event.owner_id,
                type=ActivityType.PREFERENCES_UPDATED,
                payload={"changed_fields": event.changed_fields},
            )
        )
