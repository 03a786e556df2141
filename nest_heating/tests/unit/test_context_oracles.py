"""Unit tests for the Home Assistant backed context oracles."""

from __future__ import annotations

from datetime import UTC, date, datetime
from unittest.mock import AsyncMock

import httpx
import pytest

from nest_heating.config import Settings
from nest_heating.errors import StoreError
from nest_heating.integrations.context_oracles import HAContextOracles, IndoorReading
from nest_heating.integrations.ha_client import HAClient, HAUnavailableError
from nest_heating.integrations.weather_service import WeatherService
from nest_heating.models.database import DeviceReading
from nest_heating.models.stores import ReadingStore

STATES = {
    "person.parent": {"entity_id": "person.parent", "state": "not_home"},
    "calendar.holidays": {"entity_id": "calendar.holidays", "state": "on"},
    "binary_sensor.kids_home": {"entity_id": "binary_sensor.kids_home", "state": "unavailable"},
    "sensor.landing_temperature": {
        "entity_id": "sensor.landing_temperature",
        "state": "16.4",
        "attributes": {"friendly_name": "Landing"},
    },
    "weather.home": {
        "entity_id": "weather.home",
        "state": "cloudy",
        "attributes": {
            "forecast": [
                {"datetime": "2026-01-05T00:00:00+00:00", "temperature": 9.5},
                {"datetime": "2026-01-06T00:00:00+00:00", "temperature": 11.0},
            ]
        },
    },
}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/":
        return httpx.Response(200, json={"message": "API running."})
    entity_id = request.url.path.removeprefix("/api/states/")
    if entity_id in STATES:
        return httpx.Response(200, json=STATES[entity_id])
    return httpx.Response(404, text="Entity not found")


@pytest.fixture
def ha() -> HAClient:
    return HAClient("http://ha.local:8123", "token", transport=httpx.MockTransport(_handler))


@pytest.fixture
def ha_settings() -> Settings:
    return Settings(
        presence_entity="person.parent",
        holiday_entity="calendar.holidays",
        kids_presence_entity="binary_sensor.kids_home",
        weather_entity="weather.home",
        indoor_sensor_entities="sensor.landing_temperature, sensor.missing",
    )


class TestFlags:
    async def test_entities_map_to_booleans(self, ha, ha_settings):
        oracles = HAContextOracles(ha_settings, ha_client=ha)

        assert await oracles.at_home_today() is False
        assert await oracles.on_holiday_today() is True
        assert await oracles.kids_at_home_today() is None

    async def test_unconfigured_is_unknown(self, ha):
        oracles = HAContextOracles(Settings(presence_entity=""), ha_client=ha)

        assert await oracles.at_home_today() is None

    async def test_unreachable_is_unknown(self, ha_settings):
        ha = AsyncMock(spec=HAClient)
        ha.get_state.side_effect = HAUnavailableError("down")
        oracles = HAContextOracles(ha_settings, ha_client=ha)

        assert await oracles.on_holiday_today() is None


class TestForecast:
    async def test_high_for_requested_day(self, ha):
        weather = WeatherService(ha, weather_entity="weather.home")

        assert await weather.forecast_high(date(2026, 1, 6)) == 11.0
        assert await weather.forecast_high(date(2026, 2, 1)) is None

    async def test_falls_back_to_service_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/":
                return httpx.Response(200, json={"message": "API running."})
            if request.method == "GET":
                return httpx.Response(200, json={"entity_id": "weather.home", "state": "sunny"})
            assert request.url.path == "/api/services/weather/get_forecasts"
            return httpx.Response(
                200,
                json={
                    "service_response": {
                        "weather.home": {
                            "forecast": [{"datetime": "2026-01-05", "temperature": 18.0}]
                        }
                    }
                },
            )

        ha = HAClient("http://ha.local:8123", "token", transport=httpx.MockTransport(handler))
        weather = WeatherService(ha, weather_entity="weather.home")

        assert await weather.forecast_high(date(2026, 1, 5)) == 18.0


class TestIndoorReadings:
    async def test_combines_store_and_sensors(self, ha, ha_settings):
        store = AsyncMock(spec=ReadingStore)
        store.readings_since.return_value = [
            DeviceReading(
                recorded_at=datetime(2026, 1, 5, 9, 0, tzinfo=UTC),
                device_id="devices/hall",
                device="THERMOSTAT",
                location="Hall",
                temperature_c=19.0,
            ),
            DeviceReading(
                recorded_at=datetime(2026, 1, 5, 9, 15, tzinfo=UTC),
                device_id="devices/hall",
                device="THERMOSTAT",
                location="Hall",
                temperature_c=19.5,
            ),
        ]
        oracles = HAContextOracles(ha_settings, ha_client=ha, reading_store=store)

        readings = await oracles.indoor_readings()

        assert readings == [IndoorReading("Hall", 19.5), IndoorReading("Landing", 16.4)]

    async def test_store_failure_leaves_sensor_readings(self, ha, ha_settings):
        store = AsyncMock(spec=ReadingStore)
        store.readings_since.side_effect = StoreError("db down")
        oracles = HAContextOracles(ha_settings, ha_client=ha, reading_store=store)

        assert await oracles.indoor_readings() == [IndoorReading("Landing", 16.4)]


async def test_snapshot_bundles_every_oracle(ha, ha_settings):
    weather = WeatherService(ha, weather_entity="weather.home")
    oracles = HAContextOracles(ha_settings, ha_client=ha, weather=weather)

    snapshot = await oracles.snapshot()

    assert snapshot.at_home_today is False
    assert snapshot.on_holiday_today is True
    assert snapshot.kids_at_home_today is None
    assert snapshot.indoor_readings == (IndoorReading("Landing", 16.4),)
    assert snapshot.now.tzinfo is not None
