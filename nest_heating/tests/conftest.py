from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from nest_heating.config import Settings
from nest_heating.integrations.context_oracles import (
    ContextOracles,
    ContextSnapshot,
    IndoorReading,
)
from nest_heating.integrations.device_adapter import Device, DeviceAdapter
from nest_heating.models.enums import DeviceKind, EcoMode
from nest_heating.models.schemas import ScheduleEntry
from nest_heating.models.stores import ScheduleStore

LONDON = ZoneInfo("Europe/London")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        time_zone="Europe/London",
        cosy_outside_temp_c=17.0,
        away_eco_start_hour=9,
        away_eco_end_hour=15,
        excluded_locations="Garden",
        school_return_pattern="Return from school",
        night_setback_enabled=False,
        mock=True,
    )


@pytest.fixture
def make_device() -> Callable[..., Device]:
    def _make(
        device_id: str = "enterprises/p/devices/hall",
        *,
        eco_mode: EcoMode | None = EcoMode.off,
        set_point_c: float | None = 19.0,
        temperature_c: float | None = 18.5,
        location: str | None = "Hall",
        observed_at: datetime | None = None,
        kind: DeviceKind = DeviceKind.thermostat,
    ) -> Device:
        return Device(
            device_id=device_id,
            kind=kind,
            device_type="sdm.devices.types.THERMOSTAT",
            location=location,
            temperature_c=temperature_c,
            humidity=45.0,
            connectivity="ONLINE",
            mode="HEAT",
            eco_mode=eco_mode,
            set_point_c=set_point_c,
            hvac_status="OFF",
            observed_at=observed_at or datetime(2026, 1, 1, tzinfo=UTC),
        )

    return _make


@pytest.fixture
def make_context() -> Callable[..., ContextSnapshot]:
    def _make(
        *,
        now: datetime | None = None,
        at_home: bool | None = True,
        holiday: bool | None = False,
        kids: bool | None = True,
        forecast: float | None = None,
        indoor: dict[str, float] | None = None,
    ) -> ContextSnapshot:
        readings = indoor if indoor is not None else {"Lounge": 20.0}
        return ContextSnapshot(
            now=now or datetime(2026, 1, 5, 18, 0, tzinfo=LONDON),
            at_home_today=at_home,
            on_holiday_today=holiday,
            kids_at_home_today=kids,
            forecast_high_c=forecast,
            indoor_readings=tuple(IndoorReading(loc, t) for loc, t in readings.items()),
        )

    return _make


def schedule_entry(schedule_number: int, **overrides: Any) -> ScheduleEntry:
    values: dict[str, Any] = {
        "schedule_number": schedule_number,
        "name": f"Schedule {schedule_number}",
        "hour": 7,
        "minute": 30,
        "eco_mode": False,
        "temperature": 20.0,
        "active": True,
        "override": False,
    }
    if schedule_number == 0:
        values.update(name="Master", hour=None, minute=None, day_temp=19.0, night_temp=16.0)
    values.update(overrides)
    return ScheduleEntry(**values)


@pytest.fixture
def schedule_store() -> AsyncMock:
    store = AsyncMock(spec=ScheduleStore)
    store.list_schedules.return_value = [schedule_entry(0)]
    return store


@pytest.fixture
def oracles(make_context: Callable[..., ContextSnapshot]) -> MagicMock:
    mock = MagicMock(spec=ContextOracles)
    mock.now.return_value = datetime(2026, 1, 5, 18, 0, tzinfo=LONDON)
    mock.at_home_today = AsyncMock(return_value=False)
    mock.on_holiday_today = AsyncMock(return_value=False)
    mock.kids_at_home_today = AsyncMock(return_value=True)
    mock.forecast_high_today = AsyncMock(return_value=None)
    mock.indoor_readings = AsyncMock(return_value=[])
    mock.snapshot = AsyncMock(return_value=make_context())
    return mock


@pytest.fixture
def adapter() -> AsyncMock:
    mock = AsyncMock(spec=DeviceAdapter)
    mock.execute_command.return_value = None
    return mock


@pytest.fixture
def make_entry() -> Callable[..., ScheduleEntry]:
    return schedule_entry
