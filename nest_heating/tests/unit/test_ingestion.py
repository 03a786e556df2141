"""Unit tests for nest_heating.core.ingestion."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from nest_heating.core.decision_engine import HeatingState
from nest_heating.core.ingestion import TelemetryIngestor, reading_from_device
from nest_heating.core.scheduler import RegisteredJob
from nest_heating.errors import DeviceError, StoreError
from nest_heating.models.enums import EcoMode
from nest_heating.models.stores import ReadingStore


@pytest.fixture
def readings() -> AsyncMock:
    store = AsyncMock(spec=ReadingStore)
    store.add_reading.side_effect = lambda reading: reading
    return store


@pytest.fixture
def engine(make_context) -> AsyncMock:
    mock = AsyncMock()
    mock.gather.return_value = (MagicMock(name="master"), make_context())
    return mock


class TestReadingFromDevice:
    def test_maps_eco_mode_to_bool(self, make_device):
        reading = reading_from_device(make_device(eco_mode=EcoMode.on, set_point_c=18.5))

        assert reading.eco_mode is True
        assert reading.set_point_c == 18.5
        assert reading.device == "sdm.devices.types.THERMOSTAT"
        assert reading.location == "Hall"

    def test_unknown_eco_mode_stays_unknown(self, make_device):
        assert reading_from_device(make_device(eco_mode=None)).eco_mode is None


class TestPollOnce:
    async def test_persists_every_thermostat(self, adapter, readings, make_device):
        adapter.list_thermostats.return_value = [make_device("devices/a"), make_device("devices/b")]
        ingestor = TelemetryIngestor(adapter=adapter, readings=readings)

        stored = await ingestor.poll_once()

        assert [r.device_id for r in stored] == ["devices/a", "devices/b"]

    async def test_store_failure_isolated_per_device(
        self, adapter, readings, engine, make_device
    ):
        adapter.list_thermostats.return_value = [make_device("devices/a"), make_device("devices/b")]

        def add(reading):
            if reading.device_id == "devices/a":
                raise StoreError("disk full")
            return reading

        readings.add_reading.side_effect = add
        ingestor = TelemetryIngestor(adapter=adapter, readings=readings, engine=engine)

        stored = await ingestor.poll_once()

        assert [r.device_id for r in stored] == ["devices/b"]
        engine.evaluate.assert_awaited_once()
        assert engine.evaluate.await_args.args[0].device_id == "devices/b"

    async def test_listing_failure_returns_empty(self, adapter, readings):
        adapter.list_thermostats.side_effect = DeviceError("No devices found")
        ingestor = TelemetryIngestor(adapter=adapter, readings=readings)

        assert await ingestor.poll_once() == []
        readings.add_reading.assert_not_awaited()

    async def test_reacts_with_current_schedule_intent(
        self, adapter, readings, engine, make_device
    ):
        adapter.list_thermostats.return_value = [make_device()]
        scheduler = MagicMock()
        scheduler.intent_at.return_value = RegisteredJob(6, 0, "Morning", 1, False, 21.0)
        ingestor = TelemetryIngestor(
            adapter=adapter, readings=readings, engine=engine, scheduler=scheduler
        )

        await ingestor.poll_once()

        assert engine.evaluate.await_args.args[1] == HeatingState.heat(21.0)

    async def test_react_false_skips_decisions(self, adapter, readings, engine, make_device):
        adapter.list_thermostats.return_value = [make_device()]
        ingestor = TelemetryIngestor(adapter=adapter, readings=readings, engine=engine)

        await ingestor.poll_once(react=False)

        engine.gather.assert_not_awaited()
        engine.evaluate.assert_not_awaited()

    async def test_device_error_while_reacting_is_logged(
        self, adapter, readings, engine, make_device
    ):
        adapter.list_thermostats.return_value = [make_device("devices/a"), make_device("devices/b")]
        engine.evaluate.side_effect = [DeviceError("rejected"), None]
        ingestor = TelemetryIngestor(adapter=adapter, readings=readings, engine=engine)

        stored = await ingestor.poll_once()

        assert len(stored) == 2
        assert engine.evaluate.await_count == 2
