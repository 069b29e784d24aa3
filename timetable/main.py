"""FastAPI application: thin HTTP adapter over the schedule service.

The owner id arrives in the ``X-Owner-Id`` header and is trusted as-is;
authentication happens upstream of this service.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from timetable.config import configure_logging
from timetable.domain.bus import EventBus
from timetable.domain.handlers import ActivityRecorder
from timetable.domain.intervals import TimeInterval
from timetable.domain.models import (
    ActivityEntry,
    AvailabilityCheck,
    AvailabilityResult,
    AvailableSlots,
    ClassEntry,
    ClassEntryInput,
    ClassEntryPatch,
    DailySchedule,
    OwnerDefaults,
    Preferences,
    PreferencesPatch,
    Weekday,
)
from timetable.domain.schedule import Schedule
from timetable.errors import (
    ConflictError,
    NotFoundError,
    StaleScheduleError,
    ValidationError,
)
from timetable.repos.memory import ActivityRepository, InMemoryScheduleStore
from timetable.services.schedules import ScheduleService

configure_logging()

app = FastAPI(title="Personal Timetable Service")

# ── Shared service wiring ─────────────────────────────────────────────
event_bus = EventBus()
schedule_store = InMemoryScheduleStore()
activity_repo = ActivityRepository()
activity_recorder = ActivityRecorder(bus=event_bus, activity_repo=activity_repo)
schedule_service = ScheduleService(store=schedule_store, bus=event_bus)

OwnerId = Annotated[str, Header(alias="X-Owner-Id", min_length=1)]


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(ValidationError)
def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "field": exc.field, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0]
    original = first.get("ctx", {}).get("error")
    if isinstance(original, ValidationError):
        return _validation_error(request, original)
    # drop the "body" / "query" / "header" / "path" prefix
    field = ".".join(str(part) for part in first["loc"][1:]) or "interval"
    return _validation_error(request, ValidationError(field, first["msg"]))


@app.exception_handler(NotFoundError)
def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": f"{exc.kind.capitalize()} not found", "message": str(exc)},
    )


@app.exception_handler(ConflictError)
def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "error": "Time slot conflict",
            "message": str(exc),
            "conflicting_class": exc.conflicting.model_dump(mode="json"),
        },
    )


@app.exception_handler(StaleScheduleError)
def _stale(request: Request, exc: StaleScheduleError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": "Concurrent modification", "message": str(exc)},
    )


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/timetable", response_model=Schedule, status_code=201)
def create_timetable(
    defaults: OwnerDefaults, owner_id: OwnerId, response: Response
) -> Schedule:
    """Create the owner's timetable (201), or return the existing one (200)."""
    schedule, created = schedule_service.ensure_schedule(owner_id, defaults)
    if not created:
        response.status_code = 200
    return schedule


@app.get("/timetable", response_model=Schedule)
def get_timetable(owner_id: OwnerId) -> Schedule:
    schedule = schedule_service.get_schedule(owner_id)
    schedule.entries = schedule.get_sorted_classes()
    return schedule


@app.post("/timetable/classes", response_model=ClassEntry, status_code=201)
def add_class(payload: ClassEntryInput, owner_id: OwnerId) -> ClassEntry:
    return schedule_service.add_class(owner_id, payload)


@app.put("/timetable/classes/{class_id}", response_model=ClassEntry)
def update_class(
    class_id: str, patch: ClassEntryPatch, owner_id: OwnerId
) -> ClassEntry:
    return schedule_service.update_class(owner_id, class_id, patch)


@app.delete("/timetable/classes/{class_id}")
def remove_class(class_id: str, owner_id: OwnerId) -> dict:
    if not schedule_service.remove_class(owner_id, class_id):
        raise NotFoundError("class", class_id)
    return {"status": "removed", "class_id": class_id}


@app.put("/timetable/preferences", response_model=Preferences)
def update_preferences(patch: PreferencesPatch, owner_id: OwnerId) -> Preferences:
    return schedule_service.update_preferences(owner_id, patch)


@app.get("/timetable/daily/{day}", response_model=DailySchedule)
def get_daily(day: Weekday, owner_id: OwnerId) -> DailySchedule:
    classes = schedule_service.get_classes_for_day(owner_id, day)
    return DailySchedule(day=day, classes=classes, total_classes=len(classes))


@app.get("/timetable/available-slots/{day}", response_model=AvailableSlots)
def get_available_slots(
    day: Weekday,
    owner_id: OwnerId,
    start_hour: int = 8,
    end_hour: int = 18,
    quantum: int | None = None,
    accept_coarser: bool = False,
) -> AvailableSlots:
    slots = schedule_service.get_available_time_slots(
        owner_id, day, start_hour, end_hour, quantum=quantum, accept_coarser=accept_coarser
    )
    return AvailableSlots(day=day, available_slots=slots, total_available=len(slots))


@app.post("/timetable/check-availability", response_model=AvailabilityResult)
def check_availability(body: AvailabilityCheck, owner_id: OwnerId) -> AvailabilityResult:
    interval: TimeInterval = body.interval
    available = schedule_service.is_time_slot_available(
        owner_id, body.day, interval, body.exclude_class_id
    )
    return AvailabilityResult(
        day=body.day,
        start_time=interval.start_time,
        end_time=interval.end_time,
        is_available=available,
    )


@app.get("/timetable/activity", response_model=list[ActivityEntry])
def list_activity(owner_id: OwnerId) -> list[ActivityEntry]:
    """Return the owner's change log, oldest first."""
    return activity_repo.list_for_owner(owner_id)
