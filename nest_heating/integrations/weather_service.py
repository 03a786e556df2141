"""Outside temperature forecast from a Home Assistant ``weather.*`` entity.

Only one number matters to the heating engine: today's forecast high. The
service reads the entity's ``forecast`` attribute and, for integrations that
no longer publish it, the ``weather.get_forecasts`` service response.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from .ha_client import HAClient, HAClientError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ForecastEntry:
    """A single forecast time-slot from the HA weather entity."""

    datetime: str = ""
    temperature: float | None = None

    @property
    def day(self) -> date | None:
        try:
            return datetime.fromisoformat(self.datetime).date()
        except ValueError:
            return None


@dataclass
class _CacheEntry:
    data: Any = None
    timestamp: float = 0.0

    def is_valid(self, ttl: int) -> bool:
        return self.data is not None and (time.monotonic() - self.timestamp) < ttl


class WeatherService:
    """Fetch and cache the daily forecast of a Home Assistant weather entity.

    Usage::

        service = WeatherService(ha_client, weather_entity="weather.home")
        high = await service.forecast_high(date.today())
    """

    def __init__(
        self,
        ha_client: HAClient,
        *,
        weather_entity: str,
        cache_ttl: int = 900,
    ) -> None:
        if not weather_entity:
            raise ValueError("weather_entity must be specified")
        self._ha = ha_client
        self._weather_entity = weather_entity
        self._cache_ttl = cache_ttl
        self._forecast_cache = _CacheEntry()

    async def get_forecast(self) -> list[ForecastEntry]:
        """Return the daily forecast, cached for ``cache_ttl`` seconds.

        On failure the last cached forecast is returned when there is one,
        otherwise the ``HAClientError`` propagates.
        """
        if self._forecast_cache.is_valid(self._cache_ttl):
            return list(self._forecast_cache.data)

        try:
            raw = await self._fetch_raw_forecast()
        except HAClientError:
            logger.exception("Failed to fetch forecast for %s", self._weather_entity)
            if self._forecast_cache.data is not None:
                logger.warning("Returning stale cached forecast")
                return list(self._forecast_cache.data)
            raise

        entries = [self._parse_forecast_entry(item) for item in raw if isinstance(item, dict)]
        self._forecast_cache = _CacheEntry(data=entries, timestamp=time.monotonic())
        logger.info("Fetched forecast with %d entries", len(entries))
        return entries

    async def forecast_high(self, day: date) -> float | None:
        """Return the forecast high for *day*, or ``None`` when not forecast.

        When no entry carries a date the first entry is taken as today's.
        """
        entries = await self.get_forecast()
        highs = [
            entry.temperature
            for entry in entries
            if entry.temperature is not None and entry.day == day
        ]
        if highs:
            return max(highs)
        if entries and all(entry.day is None for entry in entries):
            return entries[0].temperature
        return None

    async def _fetch_raw_forecast(self) -> list[Any]:
        entity = await self._ha.get_state(self._weather_entity)
        raw = entity.attributes.get("forecast")
        if isinstance(raw, list) and raw:
            return raw

        payload = await self._ha.call_service(
            "weather",
            "get_forecasts",
            {"entity_id": self._weather_entity, "type": "daily"},
            return_response=True,
        )
        if not isinstance(payload, dict):
            return []
        response = payload.get("service_response", payload)
        entity_response = response.get(self._weather_entity) or {}
        forecast = entity_response.get("forecast")
        return forecast if isinstance(forecast, list) else []

    @staticmethod
    def _parse_forecast_entry(item: dict[str, Any]) -> ForecastEntry:
        return ForecastEntry(
            datetime=str(item.get("datetime", "")),
            temperature=_safe_float(item.get("temperature")),
        )


def _safe_float(value: Any) -> float | None:
    """Coerce *value* to float, returning ``None`` on failure."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


__all__ = ["ForecastEntry", "WeatherService"]
