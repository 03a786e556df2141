"""Telemetry polling: persist one reading per thermostat and react to it."""

from __future__ import annotations

import logging

from nest_heating.errors import ConfigError, DeviceError, StoreError
from nest_heating.integrations.device_adapter import Device, DeviceAdapter
from nest_heating.models.database import DeviceReading
from nest_heating.models.enums import EcoMode
from nest_heating.models.stores import ReadingStore

from .decision_engine import DecisionEngine
from .scheduler import HeatingScheduler

logger = logging.getLogger(__name__)


def reading_from_device(device: Device) -> DeviceReading:
    return DeviceReading(
        recorded_at=device.observed_at,
        device_id=device.device_id,
        device=device.device_type,
        location=device.location,
        temperature_c=device.temperature_c,
        humidity=device.humidity,
        connectivity=device.connectivity,
        mode=device.mode,
        eco_mode=None if device.eco_mode is None else device.eco_mode == EcoMode.on,
        set_point_c=device.set_point_c,
        hvac_status=device.hvac_status,
    )


class TelemetryIngestor:
    """Poll the adapter, store readings and run reactive decisions."""

    def __init__(
        self,
        *,
        adapter: DeviceAdapter,
        readings: ReadingStore,
        engine: DecisionEngine | None = None,
        scheduler: HeatingScheduler | None = None,
    ) -> None:
        self._adapter = adapter
        self._readings = readings
        self._engine = engine
        self._scheduler = scheduler

    async def poll_once(self, react: bool = True) -> list[DeviceReading]:
        """Poll every thermostat once.

        A device whose reading cannot be stored is skipped; the others are
        still processed. Returns the readings that were persisted.
        """
        try:
            thermostats = await self._adapter.list_thermostats()
        except DeviceError as exc:
            logger.error("Unable to poll thermostats: %s", exc)
            return []

        persisted: list[tuple[Device, DeviceReading]] = []
        for device in thermostats:
            try:
                reading = await self._readings.add_reading(reading_from_device(device))
            except StoreError as exc:
                logger.error("Failed to save reading for %s: %s", device.device_id, exc)
                continue
            persisted.append((device, reading))

        logger.debug("Stored %d of %d thermostat reading(s)", len(persisted), len(thermostats))

        if react and persisted and self._engine is not None:
            await self._react([device for device, _ in persisted])

        return [reading for _, reading in persisted]

    async def _react(self, devices: list[Device]) -> None:
        assert self._engine is not None  # noqa: S101 - checked by caller
        try:
            master, context = await self._engine.gather()
        except (StoreError, ConfigError) as exc:
            logger.error("Skipping reactive decisions: %s", exc)
            return

        job = self._scheduler.intent_at(context.now) if self._scheduler else None
        intent = job.intent if job else None

        for device in devices:
            try:
                await self._engine.evaluate(device, intent, master=master, context=context)
            except DeviceError as exc:
                logger.error("Failed to update %s: %s", device.device_id, exc)


__all__ = ["TelemetryIngestor", "reading_from_device"]
