"""Per-device serialized, idempotent command application."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from numbers import Real

from nest_heating.errors import DeviceError, ValidationError
from nest_heating.integrations.device_adapter import (
    Device,
    DeviceAdapter,
    DeviceCommand,
    SetEcoMode,
    SetHeatpoint,
)
from nest_heating.models.enums import DispatchOutcome, EcoMode

from .decision_engine import HeatingState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DispatchResult:
    device_id: str
    outcome: DispatchOutcome
    commands: tuple[str, ...] = ()

    @property
    def applied(self) -> bool:
        return self.outcome == DispatchOutcome.applied


class CommandDispatcher:
    """Apply desired states to devices, one writer per device at a time.

    The dispatcher remembers the state it last confirmed for each device and
    compares the desired state against the newest of that memory, the
    snapshot handed in by the caller, or a fresh read from the adapter.
    Nothing is retried: a ``DeviceError`` goes straight back to the caller.
    """

    def __init__(self, adapter: DeviceAdapter) -> None:
        self._adapter = adapter
        self._locks: dict[str, asyncio.Lock] = {}
        self._known: dict[str, Device] = {}

    def _lock_for(self, device_id: str) -> asyncio.Lock:
        lock = self._locks.get(device_id)
        if lock is None:
            lock = self._locks[device_id] = asyncio.Lock()
        return lock

    async def _last_known(self, device_id: str, current: Device | None) -> Device:
        known = self._known.get(device_id)
        candidates = [device for device in (known, current) if device is not None]
        if candidates:
            return max(candidates, key=lambda device: device.observed_at)
        return await self._adapter.get_device(device_id)

    async def apply(
        self,
        device_id: str,
        desired: HeatingState,
        current: Device | None = None,
    ) -> DispatchResult:
        """Bring *device_id* to *desired*, issuing only the commands needed.

        The eco command, when needed, is confirmed before any set-point
        command. A set-point is only sent with eco off.

        Raises:
            DeviceError: If the adapter rejects a command or cannot be read.
            ValidationError: If the heat temperature is not a number.
        """
        temperature = desired.heat_temperature
        if temperature is not None and (
            isinstance(temperature, bool) or not isinstance(temperature, Real)
        ):
            raise ValidationError(f"Heat temperature must be a number, got {temperature!r}")

        async with self._lock_for(device_id):
            state = await self._last_known(device_id, current)
            issued: list[DeviceCommand] = []
            target_eco = EcoMode.from_bool(desired.eco_mode)

            if state.eco_mode != target_eco:
                await self._adapter.execute_command(device_id, SetEcoMode(target_eco))
                issued.append(SetEcoMode(target_eco))
                state = replace(state, eco_mode=target_eco, observed_at=datetime.now(UTC))
                self._known[device_id] = state

            if (
                temperature is not None
                and state.eco_mode == EcoMode.off
                and state.set_point_c != float(temperature)
            ):
                command = SetHeatpoint(float(temperature))
                await self._adapter.execute_command(device_id, command)
                issued.append(command)
                state = replace(state, set_point_c=command.celsius, observed_at=datetime.now(UTC))

            self._known[device_id] = state

        names = tuple(type(command).__name__ for command in issued)
        if not issued:
            logger.debug("Nothing to update on %s", device_id)
            return DispatchResult(device_id, DispatchOutcome.no_op)
        logger.info("Applied %s to %s", ", ".join(names), device_id)
        return DispatchResult(device_id, DispatchOutcome.applied, names)

    async def apply_all(self, desired: HeatingState) -> list[DispatchResult]:
        """Apply *desired* to every thermostat the adapter lists.

        A command failure on one thermostat does not stop the others.

        Raises:
            DeviceError: When listing fails, or the first command failure once
                every thermostat has been tried.
        """
        thermostats = await self._adapter.list_thermostats()
        results: list[DispatchResult] = []
        failures: list[DeviceError] = []
        for device in thermostats:
            try:
                results.append(await self.apply(device.device_id, desired, current=device))
            except DeviceError as exc:
                logger.error("Could not update %s: %s", device.device_id, exc)
                failures.append(exc)
        if failures:
            raise failures[0]
        return results


__all__ = ["CommandDispatcher", "DispatchResult"]
