"""FastAPI dependency injection helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status

from nest_heating.core.dispatcher import CommandDispatcher
from nest_heating.core.ingestion import TelemetryIngestor
from nest_heating.core.scheduler import HeatingScheduler
from nest_heating.models.stores import ReadingStore, ScheduleStore

# ---------------------------------------------------------------------------
# Shared services (wired up by the application lifespan)
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Services:
    schedule_store: ScheduleStore
    reading_store: ReadingStore
    dispatcher: CommandDispatcher
    scheduler: HeatingScheduler
    ingestor: TelemetryIngestor


_services: Services | None = None


def set_services(services: Services | None) -> None:
    """Set the shared services (called during app startup and shutdown)."""
    global _services
    _services = services


def get_services() -> Services:
    if _services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Heating services are not initialised",
        )
    return _services


def get_schedule_store() -> ScheduleStore:
    return get_services().schedule_store


def get_reading_store() -> ReadingStore:
    return get_services().reading_store


def get_dispatcher() -> CommandDispatcher:
    return get_services().dispatcher


def get_scheduler() -> HeatingScheduler:
    return get_services().scheduler


def get_ingestor() -> TelemetryIngestor:
    return get_services().ingestor


ScheduleStoreDep = Annotated[ScheduleStore, Depends(get_schedule_store)]
ReadingStoreDep = Annotated[ReadingStore, Depends(get_reading_store)]
DispatcherDep = Annotated[CommandDispatcher, Depends(get_dispatcher)]
SchedulerDep = Annotated[HeatingScheduler, Depends(get_scheduler)]
IngestorDep = Annotated[TelemetryIngestor, Depends(get_ingestor)]


__all__ = [
    "DispatcherDep",
    "IngestorDep",
    "ReadingStoreDep",
    "ScheduleStoreDep",
    "SchedulerDep",
    "Services",
    "get_dispatcher",
    "get_ingestor",
    "get_reading_store",
    "get_schedule_store",
    "get_scheduler",
    "get_services",
    "set_services",
]
