"""Context oracles: what the household looks like today.

Each oracle answers one question about "today" and returns ``None`` when the
answer is unknown (entity not configured, Home Assistant unreachable). The
engine treats unknown as "no signal", never as a reason to act.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from nest_heating.config import Settings
from nest_heating.errors import StoreError
from nest_heating.models.stores import ReadingStore

from .ha_client import HAClient, HAClientError
from .weather_service import WeatherService

logger = logging.getLogger(__name__)

CURRENT_READING_WINDOW = timedelta(hours=1)


@dataclass(frozen=True, slots=True)
class IndoorReading:
    location: str
    temperature_c: float


@dataclass(frozen=True, slots=True)
class ContextSnapshot:
    """Everything the decision rules need to know about today."""

    now: datetime
    at_home_today: bool | None = None
    on_holiday_today: bool | None = None
    kids_at_home_today: bool | None = None
    forecast_high_c: float | None = None
    indoor_readings: tuple[IndoorReading, ...] = field(default_factory=tuple)


class ContextOracles(ABC):
    """Interface queried by the scheduler and the decision engine."""

    @abstractmethod
    def now(self) -> datetime:
        """Current local wall-clock time."""

    @abstractmethod
    async def at_home_today(self) -> bool | None: ...

    @abstractmethod
    async def on_holiday_today(self) -> bool | None: ...

    @abstractmethod
    async def kids_at_home_today(self) -> bool | None: ...

    @abstractmethod
    async def forecast_high_today(self) -> float | None: ...

    @abstractmethod
    async def indoor_readings(self) -> list[IndoorReading]: ...

    async def snapshot(self) -> ContextSnapshot:
        """Query every oracle concurrently and bundle the answers."""
        at_home, holiday, kids, forecast, indoor = await asyncio.gather(
            self.at_home_today(),
            self.on_holiday_today(),
            self.kids_at_home_today(),
            self.forecast_high_today(),
            self.indoor_readings(),
        )
        return ContextSnapshot(
            now=self.now(),
            at_home_today=at_home,
            on_holiday_today=holiday,
            kids_at_home_today=kids,
            forecast_high_c=forecast,
            indoor_readings=tuple(indoor),
        )


class HAContextOracles(ContextOracles):
    """Oracles backed by Home Assistant entities and recent thermostat readings.

    Indoor temperatures combine the latest reading per location from the
    reading store (last hour) with any configured HA temperature sensors.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        ha_client: HAClient | None = None,
        weather: WeatherService | None = None,
        reading_store: ReadingStore | None = None,
    ) -> None:
        self._settings = settings
        self._tz = ZoneInfo(settings.time_zone)
        self._ha = ha_client
        self._weather = weather
        self._readings = reading_store

    def now(self) -> datetime:
        return datetime.now(self._tz)

    async def _entity_flag(self, entity_id: str) -> bool | None:
        if not entity_id or self._ha is None:
            return None
        try:
            state = await self._ha.get_state(entity_id)
        except HAClientError as exc:
            logger.warning("Could not read %s: %s", entity_id, exc)
            return None
        return state.as_bool()

    async def at_home_today(self) -> bool | None:
        return await self._entity_flag(self._settings.presence_entity)

    async def on_holiday_today(self) -> bool | None:
        return await self._entity_flag(self._settings.holiday_entity)

    async def kids_at_home_today(self) -> bool | None:
        return await self._entity_flag(self._settings.kids_presence_entity)

    async def forecast_high_today(self) -> float | None:
        if self._weather is None:
            return None
        try:
            return await self._weather.forecast_high(self.now().date())
        except HAClientError as exc:
            logger.warning("Forecast unavailable: %s", exc)
            return None

    async def indoor_readings(self) -> list[IndoorReading]:
        by_location: dict[str, float] = {}

        if self._readings is not None:
            cutoff = datetime.now(UTC) - CURRENT_READING_WINDOW
            try:
                rows = await self._readings.readings_since(cutoff)
            except StoreError as exc:
                logger.warning("Recent readings unavailable: %s", exc)
                rows = []
            # oldest first, so later rows overwrite earlier ones
            for row in rows:
                if row.temperature_c is not None:
                    by_location[row.location or row.device_id] = row.temperature_c

        if self._ha is not None:
            for entity_id in self._settings.indoor_sensor_entity_ids:
                try:
                    state = await self._ha.get_state(entity_id)
                except HAClientError as exc:
                    logger.warning("Could not read %s: %s", entity_id, exc)
                    continue
                value = state.as_float()
                if value is not None:
                    by_location[state.friendly_name] = value

        return [IndoorReading(location, temp) for location, temp in by_location.items()]


__all__ = [
    "CURRENT_READING_WINDOW",
    "ContextOracles",
    "ContextSnapshot",
    "HAContextOracles",
    "IndoorReading",
]
