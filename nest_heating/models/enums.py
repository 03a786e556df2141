"""Domain enums for nest-heating."""

from __future__ import annotations

from enum import StrEnum


class EcoMode(StrEnum):
    """Internal two-state eco mode; vendor values live in the device adapter."""

    on = "on"
    off = "off"

    @classmethod
    def from_bool(cls, eco: bool) -> EcoMode:
        return cls.on if eco else cls.off


class DeviceKind(StrEnum):
    thermostat = "thermostat"
    camera = "camera"
    doorbell = "doorbell"
    display = "display"
    other = "other"


class DecisionOutcome(StrEnum):
    command = "command"
    no_op = "no_op"
    no_data = "no_data"


class DecisionRule(StrEnum):
    master_eco = "master_eco"
    holiday = "holiday"
    away_today = "away_today"
    weather = "weather"
    schedule = "schedule"
    indoor_temperature = "indoor_temperature"


class DispatchOutcome(StrEnum):
    applied = "applied"
    no_op = "no_op"


class ReportDuration(StrEnum):
    hour = "hour"
    day = "day"
    week = "week"
    month = "month"
    year = "year"
