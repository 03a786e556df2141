"""Pydantic schemas for nest-heating models."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from nest_heating.errors import ConfigError, ValidationError

from .database import MASTER_SCHEDULE_NUMBER


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleEntry(CamelModel):
    """A persisted heating rule as seen by the engine and the API."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    schedule_number: int
    name: str = ""
    hour: int | None = Field(default=None, ge=0, le=23)
    minute: int | None = Field(default=None, ge=0, le=59)
    eco_mode: bool = False
    temperature: float | None = None
    day_temp: float | None = None
    night_temp: float | None = None
    active: bool = True
    override: bool = False

    @property
    def is_master(self) -> bool:
        return self.schedule_number == MASTER_SCHEDULE_NUMBER

    def check_trigger(self) -> None:
        """Raise ``ValidationError`` when an ordinary entry has no trigger time."""
        if self.is_master:
            return
        if self.hour is None or self.minute is None:
            raise ValidationError(
                f"Schedule {self.schedule_number} ({self.name}) has no hour/minute"
            )


class ScheduleUpdate(CamelModel):
    """Partial update of the mutable schedule fields."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    hour: int | None = Field(default=None, ge=0, le=23)
    minute: int | None = Field(default=None, ge=0, le=59)
    eco_mode: bool | None = None
    override: bool | None = None
    active: bool | None = None
    temperature: float | None = Field(default=None, ge=4.0, le=30.0)


class MasterOverride(CamelModel):
    """Projection of the ``scheduleNumber = 0`` record."""

    eco_mode: bool = False
    day_temperature: float | None = None
    night_temperature: float | None = None

    @classmethod
    def from_entries(cls, entries: list[ScheduleEntry]) -> MasterOverride:
        for entry in entries:
            if entry.is_master:
                return cls(
                    eco_mode=entry.eco_mode,
                    day_temperature=entry.day_temp,
                    night_temperature=entry.night_temp,
                )
        raise ConfigError("Master eco mode is missing from data")


class MasterEcoModeUpdate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    master_eco_mode: bool


class HeatingRequest(CamelModel):
    """Manual one-shot desired state."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    eco_mode: bool | None = None
    heat_temperature: float | None = Field(default=None, ge=4.0, le=30.0)


class DeviceReadingResponse(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    time: datetime = Field(
        validation_alias=AliasChoices("recorded_at", "time"), serialization_alias="time"
    )
    device_id: str
    device: str
    location: str | None = None
    temperature: float | None = Field(
        default=None,
        validation_alias=AliasChoices("temperature_c", "temperature"),
        serialization_alias="temperature",
    )
    humidity: float | None = None
    connectivity: str | None = None
    mode: str | None = None
    eco_mode: bool | None = None
    set_point: float | None = Field(
        default=None,
        validation_alias=AliasChoices("set_point_c", "setPoint"),
        serialization_alias="setPoint",
    )
    hvac_status: str | None = None


class CurrentReadingResponse(DeviceReadingResponse):
    eco_mode_override: bool | None = None


class StateResponse(BaseModel):
    state: str


__all__ = [
    "CurrentReadingResponse",
    "DeviceReadingResponse",
    "HeatingRequest",
    "MasterEcoModeUpdate",
    "MasterOverride",
    "ScheduleEntry",
    "ScheduleUpdate",
    "StateResponse",
]
