"""Unit tests for nest_heating.core.reporting."""

from __future__ import annotations

from datetime import UTC, datetime

from nest_heating.core.reporting import aggregate_readings, latest_per_device, window_start
from nest_heating.models.database import DeviceReading
from nest_heating.models.enums import ReportDuration


def _reading(ts: datetime, temperature: float, device_id: str = "devices/a") -> DeviceReading:
    return DeviceReading(
        recorded_at=ts, device_id=device_id, device="THERMOSTAT", temperature_c=temperature
    )


class TestWindowStart:
    def test_fixed_windows(self):
        now = datetime(2026, 3, 31, 12, 0, tzinfo=UTC)

        assert window_start(ReportDuration.hour, now) == datetime(2026, 3, 31, 11, 0, tzinfo=UTC)
        assert window_start(ReportDuration.day, now) == datetime(2026, 3, 30, 12, 0, tzinfo=UTC)
        assert window_start(ReportDuration.week, now) == datetime(2026, 3, 24, 12, 0, tzinfo=UTC)

    def test_month_clamps_to_short_month(self):
        now = datetime(2026, 3, 31, 12, 0, tzinfo=UTC)

        assert window_start(ReportDuration.month, now) == datetime(2026, 2, 28, 12, 0, tzinfo=UTC)

    def test_year_goes_back_twelve_months(self):
        now = datetime(2026, 1, 15, tzinfo=UTC)

        assert window_start(ReportDuration.year, now) == datetime(2025, 1, 15, tzinfo=UTC)


class TestAggregate:
    def test_hour_and_day_return_raw_readings(self):
        readings = [
            _reading(datetime(2026, 1, 1, 10, 0, tzinfo=UTC), 18.0),
            _reading(datetime(2026, 1, 1, 10, 15, tzinfo=UTC), 18.5),
        ]

        assert aggregate_readings(readings, ReportDuration.hour) == readings
        assert aggregate_readings(readings, ReportDuration.day) == readings

    def test_week_keeps_last_per_day_and_hour(self):
        readings = [
            _reading(datetime(2026, 1, 1, 10, 0, tzinfo=UTC), 18.0),
            _reading(datetime(2026, 1, 1, 10, 45, tzinfo=UTC), 18.5),
            _reading(datetime(2026, 1, 1, 11, 0, tzinfo=UTC), 19.0),
        ]

        result = aggregate_readings(readings, ReportDuration.week)

        assert [r.temperature_c for r in result] == [18.5, 19.0]

    def test_month_groups_by_day_of_month_in_order(self):
        readings = [
            _reading(datetime(2026, 1, 20, 9, 0, tzinfo=UTC), 17.0),
            _reading(datetime(2026, 2, 3, 9, 0, tzinfo=UTC), 18.0),
            _reading(datetime(2026, 2, 3, 21, 0, tzinfo=UTC), 19.0),
        ]

        result = aggregate_readings(readings, ReportDuration.month)

        assert [r.temperature_c for r in result] == [19.0, 17.0]

    def test_year_groups_by_month(self):
        readings = [
            _reading(datetime(2025, 11, 2, tzinfo=UTC), 15.0),
            _reading(datetime(2025, 11, 28, tzinfo=UTC), 16.0),
            _reading(datetime(2026, 1, 4, tzinfo=UTC), 14.0),
        ]

        result = aggregate_readings(readings, ReportDuration.year)

        assert [r.temperature_c for r in result] == [14.0, 16.0]


def test_latest_per_device():
    readings = [
        _reading(datetime(2026, 1, 1, 10, 0, tzinfo=UTC), 18.0, "devices/a"),
        _reading(datetime(2026, 1, 1, 10, 5, tzinfo=UTC), 20.0, "devices/b"),
        _reading(datetime(2026, 1, 1, 10, 15, tzinfo=UTC), 18.5, "devices/a"),
    ]

    result = latest_per_device(readings)

    assert [(r.device_id, r.temperature_c) for r in result] == [
        ("devices/a", 18.5),
        ("devices/b", 20.0),
    ]
