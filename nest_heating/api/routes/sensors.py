"""Thermostat reading and manual heating routes."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Query

from nest_heating.api.dependencies import (
    DispatcherDep,
    IngestorDep,
    ReadingStoreDep,
    ScheduleStoreDep,
)
from nest_heating.core.decision_engine import HeatingState
from nest_heating.core.reporting import aggregate_readings, latest_per_device, window_start
from nest_heating.integrations.context_oracles import CURRENT_READING_WINDOW
from nest_heating.models.database import MASTER_SCHEDULE_NUMBER
from nest_heating.models.enums import ReportDuration
from nest_heating.models.schemas import (
    CurrentReadingResponse,
    DeviceReadingResponse,
    HeatingRequest,
    StateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[DeviceReadingResponse])
async def list_readings(
    store: ReadingStoreDep,
    duration: ReportDuration = Query(default=ReportDuration.hour),
) -> list[DeviceReadingResponse]:
    """Return stored readings for the window, bucketed for longer windows."""
    cutoff = window_start(duration, datetime.now(UTC))
    readings = aggregate_readings(await store.readings_since(cutoff), duration)
    return [DeviceReadingResponse.model_validate(reading) for reading in readings]


@router.get("/current", response_model=list[CurrentReadingResponse])
async def current_readings(
    store: ReadingStoreDep,
    schedules: ScheduleStoreDep,
    ingestor: IngestorDep,
    refresh: bool = Query(default=False),
) -> list[CurrentReadingResponse]:
    """Latest reading per thermostat within the last hour."""
    if refresh:
        await ingestor.poll_once(react=False)

    cutoff = datetime.now(UTC) - CURRENT_READING_WINDOW
    latest = latest_per_device(await store.readings_since(cutoff))
    results = [CurrentReadingResponse.model_validate(reading) for reading in latest]
    if results:
        master = await schedules.get_schedule(MASTER_SCHEDULE_NUMBER)
        if master is not None:
            results[0].eco_mode_override = master.eco_mode
    return results


@router.put("/heating", response_model=StateResponse)
async def set_heating(request: HeatingRequest, dispatcher: DispatcherDep) -> StateResponse:
    """Apply a one-off desired state to every thermostat."""
    desired = HeatingState(
        eco_mode=bool(request.eco_mode), heat_temperature=request.heat_temperature
    )
    results = await dispatcher.apply_all(desired)
    if any(result.applied for result in results):
        return StateResponse(state="updated")
    return StateResponse(state="Nothing to update")
