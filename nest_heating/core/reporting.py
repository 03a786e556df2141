"""Windowing and bucketing of stored readings for the sensors API."""

from __future__ import annotations

import calendar
from collections.abc import Callable, Hashable, Iterable
from datetime import datetime, timedelta

from nest_heating.models.database import DeviceReading
from nest_heating.models.enums import ReportDuration


def _months_back(now: datetime, months: int) -> datetime:
    month_index = now.year * 12 + now.month - 1 - months
    year, month = divmod(month_index, 12)
    day = min(now.day, calendar.monthrange(year, month + 1)[1])
    return now.replace(year=year, month=month + 1, day=day)


def window_start(duration: ReportDuration, now: datetime) -> datetime:
    """Return the exclusive lower bound of the reporting window ending at *now*."""
    if duration == ReportDuration.year:
        return _months_back(now, 12)
    if duration == ReportDuration.month:
        return _months_back(now, 1)
    if duration == ReportDuration.week:
        return now - timedelta(weeks=1)
    if duration == ReportDuration.day:
        return now - timedelta(days=1)
    return now - timedelta(hours=1)


_BUCKETS: dict[ReportDuration, Callable[[datetime], Hashable]] = {
    ReportDuration.year: lambda ts: ts.month,
    ReportDuration.month: lambda ts: ts.day,
    ReportDuration.week: lambda ts: (ts.day, ts.hour),
}


def aggregate_readings(
    readings: Iterable[DeviceReading], duration: ReportDuration
) -> list[DeviceReading]:
    """Bucket *readings* (oldest first) for *duration*.

    ``year`` buckets by month, ``month`` by day of month and ``week`` by
    (day, hour); each bucket keeps its last reading and buckets come back in
    key order. ``day`` and ``hour`` return the readings unchanged.
    """
    bucket = _BUCKETS.get(duration)
    if bucket is None:
        return list(readings)

    grouped: dict[Hashable, DeviceReading] = {}
    for reading in readings:
        grouped[bucket(reading.recorded_at)] = reading
    return [grouped[key] for key in sorted(grouped)]  # type: ignore[type-var]


def latest_per_device(readings: Iterable[DeviceReading]) -> list[DeviceReading]:
    """Keep the last reading of each device, in first-seen device order."""
    latest: dict[str, DeviceReading] = {}
    for reading in readings:
        latest[reading.device_id] = reading
    return list(latest.values())


__all__ = ["aggregate_readings", "latest_per_device", "window_start"]
