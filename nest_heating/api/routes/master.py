"""Master eco mode routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from nest_heating.api.dependencies import DispatcherDep, ScheduleStoreDep, SchedulerDep
from nest_heating.core.decision_engine import HeatingState
from nest_heating.errors import DeviceError
from nest_heating.models.database import MASTER_SCHEDULE_NUMBER
from nest_heating.models.schemas import MasterEcoModeUpdate, MasterOverride, StateResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=MasterOverride)
async def get_master_eco_mode(store: ScheduleStoreDep) -> MasterOverride:
    return MasterOverride.from_entries(await store.list_schedules())


@router.put("", response_model=StateResponse)
async def update_master_eco_mode(
    update: MasterEcoModeUpdate,
    store: ScheduleStoreDep,
    dispatcher: DispatcherDep,
    scheduler: SchedulerDep,
) -> StateResponse:
    """Persist a changed master eco flag, push it to the thermostats and rebuild."""
    master = await store.get_schedule(MASTER_SCHEDULE_NUMBER)
    if master is None or master.eco_mode == update.master_eco_mode:
        return StateResponse(state="un-changed")

    await store.set_master_eco_mode(update.master_eco_mode)

    try:
        await dispatcher.apply_all(HeatingState(eco_mode=update.master_eco_mode))
    except DeviceError as exc:
        logger.error("Master eco mode saved but not applied: %s", exc)

    await scheduler.rebuild()
    return StateResponse(state="saved")
