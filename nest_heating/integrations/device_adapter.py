"""Vendor-neutral thermostat interface used by the engine and dispatcher."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime

from nest_heating.models.enums import DeviceKind, EcoMode


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class Device:
    """Snapshot of one device as reported by the vendor API."""

    device_id: str
    kind: DeviceKind
    device_type: str = ""
    location: str | None = None
    temperature_c: float | None = None
    humidity: float | None = None
    connectivity: str | None = None
    mode: str | None = None
    eco_mode: EcoMode | None = None
    set_point_c: float | None = None
    hvac_status: str | None = None
    observed_at: datetime = field(default_factory=_utc_now)

    @property
    def is_thermostat(self) -> bool:
        return self.kind == DeviceKind.thermostat


@dataclass(frozen=True, slots=True)
class SetEcoMode:
    mode: EcoMode


@dataclass(frozen=True, slots=True)
class SetHeatpoint:
    celsius: float


DeviceCommand = SetEcoMode | SetHeatpoint


class DeviceAdapter(ABC):
    """Base interface implemented by concrete thermostat clients."""

    @abstractmethod
    async def list_devices(self) -> list[Device]:
        """Return every device visible to the account.

        Raises:
            DeviceError: If the vendor API cannot be reached or answers badly.
        """

    @abstractmethod
    async def get_device(self, device_id: str) -> Device:
        """Return the current state of one device."""

    @abstractmethod
    async def execute_command(self, device_id: str, command: DeviceCommand) -> None:
        """Apply *command* to the device.

        Raises:
            DeviceError: Carrying the vendor message when the command is rejected.
        """

    async def list_thermostats(self) -> list[Device]:
        """Convenience helper filtering :meth:`list_devices` to thermostats."""
        return [device for device in await self.list_devices() if device.is_thermostat]


__all__ = [
    "Device",
    "DeviceAdapter",
    "DeviceCommand",
    "SetEcoMode",
    "SetHeatpoint",
]
