"""Schedule API routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from nest_heating.api.dependencies import ScheduleStoreDep, SchedulerDep
from nest_heating.models.schemas import ScheduleEntry, ScheduleUpdate, StateResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[ScheduleEntry])
async def list_schedules(store: ScheduleStoreDep) -> list[ScheduleEntry]:
    """List every schedule entry, master record included."""
    return await store.list_schedules()


@router.get("/{schedule_id}", response_model=list[ScheduleEntry])
async def get_schedule(schedule_id: int, store: ScheduleStoreDep) -> list[ScheduleEntry]:
    """Return the matching entry as a one-element list, or an empty list."""
    entry = await store.get_schedule(schedule_id)
    return [entry] if entry else []


@router.put("/{schedule_id}", response_model=StateResponse)
async def save_schedule(
    schedule_id: int,
    update: ScheduleUpdate,
    store: ScheduleStoreDep,
    scheduler: SchedulerDep,
) -> StateResponse:
    """Partially update an entry, then rebuild the heating jobs.

    Fields sent as ``null`` are ignored, so a save can never clear a
    trigger time or a flag.
    """
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    saved = await store.update_schedule(schedule_id, changes)
    if saved is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Schedule {schedule_id} not found",
        )

    logger.info("Schedule %d saved, rebuilding heating jobs", schedule_id)
    await scheduler.rebuild()
    return StateResponse(state="saved")
