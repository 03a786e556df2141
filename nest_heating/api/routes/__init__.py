"""API route registration for nest-heating."""

from fastapi import APIRouter

from . import master, schedules, sensors

api_router = APIRouter()
api_router.include_router(schedules.router, prefix="/schedules", tags=["schedules"])
api_router.include_router(sensors.router, prefix="/sensors", tags=["sensors"])
api_router.include_router(master.router, prefix="/masterEcoMode", tags=["master"])


__all__ = ["api_router", "master", "schedules", "sensors"]
