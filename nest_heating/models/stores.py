"""Schedule and reading persistence behind narrow async interfaces.

Every call opens its own session and closes it before returning, so nothing
read from the database outlives a single ``rebuild()`` or decision.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nest_heating.errors import StoreError

from .database import MASTER_SCHEDULE_NUMBER, DeviceReading, Schedule
from .schemas import ScheduleEntry

logger = logging.getLogger(__name__)


class ScheduleStore(ABC):
    """Source of truth for schedule entries and the master record."""

    @abstractmethod
    async def list_schedules(self) -> list[ScheduleEntry]:
        """Return every schedule entry, master included."""

    @abstractmethod
    async def get_schedule(self, schedule_number: int) -> ScheduleEntry | None:
        """Return one entry by ``schedule_number`` or ``None``."""

    @abstractmethod
    async def update_schedule(
        self, schedule_number: int, changes: dict[str, Any]
    ) -> ScheduleEntry | None:
        """Apply *changes* to an entry; ``None`` when it does not exist."""

    @abstractmethod
    async def set_master_eco_mode(self, eco_mode: bool) -> None:
        """Persist the master override's eco flag."""


class ReadingStore(ABC):
    """Append-only store of thermostat readings."""

    @abstractmethod
    async def add_reading(self, reading: DeviceReading) -> DeviceReading:
        """Persist one reading and return it."""

    @abstractmethod
    async def readings_since(self, cutoff: datetime) -> list[DeviceReading]:
        """Return readings recorded after *cutoff*, oldest first."""


class SqlScheduleStore(ScheduleStore):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def list_schedules(self) -> list[ScheduleEntry]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(Schedule).order_by(Schedule.schedule_number)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to list schedules: {exc}") from exc
        return [ScheduleEntry.model_validate(row) for row in rows]

    async def get_schedule(self, schedule_number: int) -> ScheduleEntry | None:
        try:
            async with self._session_maker() as session:
                row = await self._fetch(session, schedule_number)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read schedule {schedule_number}: {exc}") from exc
        return ScheduleEntry.model_validate(row) if row else None

    async def update_schedule(
        self, schedule_number: int, changes: dict[str, Any]
    ) -> ScheduleEntry | None:
        try:
            async with self._session_maker() as session:
                row = await self._fetch(session, schedule_number)
                if row is None:
                    return None
                for key, value in changes.items():
                    setattr(row, key, value)
                await session.commit()
                await session.refresh(row)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to save schedule {schedule_number}: {exc}") from exc
        logger.info("Saved schedule %d: %s", schedule_number, changes)
        return ScheduleEntry.model_validate(row)

    async def set_master_eco_mode(self, eco_mode: bool) -> None:
        try:
            async with self._session_maker() as session:
                row = await self._fetch(session, MASTER_SCHEDULE_NUMBER)
                if row is None:
                    row = Schedule(schedule_number=MASTER_SCHEDULE_NUMBER, name="Master")
                    session.add(row)
                row.eco_mode = eco_mode
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to save master eco mode: {exc}") from exc
        logger.info("Saved master eco mode: %s", eco_mode)

    @staticmethod
    async def _fetch(session: AsyncSession, schedule_number: int) -> Schedule | None:
        result = await session.execute(
            select(Schedule).where(Schedule.schedule_number == schedule_number)
        )
        return result.scalar_one_or_none()


class SqlReadingStore(ReadingStore):
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def add_reading(self, reading: DeviceReading) -> DeviceReading:
        try:
            async with self._session_maker() as session:
                session.add(reading)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to save reading for {reading.device_id}: {exc}") from exc
        return reading

    async def readings_since(self, cutoff: datetime) -> list[DeviceReading]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(DeviceReading)
                    .where(DeviceReading.recorded_at > cutoff)
                    .order_by(DeviceReading.recorded_at, DeviceReading.id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to query readings: {exc}") from exc


__all__ = ["ReadingStore", "ScheduleStore", "SqlReadingStore", "SqlScheduleStore"]
