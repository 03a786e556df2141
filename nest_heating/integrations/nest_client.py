"""Google Nest Smart Device Management (SDM) REST client.

Implements :class:`DeviceAdapter` on top of ``httpx``: lists the devices of a
Device Access project, maps SDM traits onto :class:`Device`, and executes the
two thermostat commands the engine needs. Vendor eco values (``OFF`` /
``MANUAL_ECO``) never leave this module.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from typing import Any

import httpx

from nest_heating.errors import DeviceError
from nest_heating.models.enums import DeviceKind, EcoMode

from .device_adapter import Device, DeviceAdapter, DeviceCommand, SetEcoMode, SetHeatpoint

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Vendor vocabulary
# ---------------------------------------------------------------------------

THERMOSTAT_TYPE = "sdm.devices.types.THERMOSTAT"

_DEVICE_KINDS = {
    THERMOSTAT_TYPE: DeviceKind.thermostat,
    "sdm.devices.types.CAMERA": DeviceKind.camera,
    "sdm.devices.types.DOORBELL": DeviceKind.doorbell,
    "sdm.devices.types.DISPLAY": DeviceKind.display,
}

_ECO_TO_VENDOR = {EcoMode.on: "MANUAL_ECO", EcoMode.off: "OFF"}
_VENDOR_TO_ECO = {vendor: eco for eco, vendor in _ECO_TO_VENDOR.items()}

_CMD_SET_ECO = "sdm.devices.commands.ThermostatEco.SetMode"
_CMD_SET_HEAT = "sdm.devices.commands.ThermostatTemperatureSetpoint.SetHeat"


class NestAuthenticationError(DeviceError):
    """Raised on 401/403 responses (expired or revoked access token)."""


class NestNotFoundError(DeviceError):
    """Raised on 404 responses (unknown project or device)."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class NestClient(DeviceAdapter):
    """Async wrapper for the SDM API.

    Usage::

        async with NestClient(url, project_id="abc", token="ya29...") as client:
            thermostats = await client.list_thermostats()
            await client.execute_command(thermostats[0].device_id, SetEcoMode(EcoMode.on))
    """

    def __init__(
        self,
        url: str,
        *,
        project_id: str,
        token: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._project_id = project_id
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # -- async context manager ------------------------------------------------

    async def __aenter__(self) -> NestClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.disconnect()

    # -- lifecycle ------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Initialise the ``httpx.AsyncClient``.

        Raises:
            DeviceError: If no project id or access token was configured.
        """
        if self._client is not None:
            return
        if not self._project_id or not self._token:
            raise DeviceError("Nest project id and access token are required")

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
            transport=self._transport,
        )
        logger.info("Nest client ready for project %s", self._project_id)

    async def disconnect(self) -> None:
        if self._client is not None:
            with suppress(Exception):
                await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Nest API")

    # -- internal request helper ----------------------------------------------

    @staticmethod
    def _vendor_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:300]
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            return str(error.get("message", ""))
        return response.text[:300]

    def _raise_for_status(self, response: httpx.Response, *, context: str = "") -> None:
        """Translate HTTP error codes into typed exceptions."""
        if response.is_success:
            return

        status = response.status_code
        vendor_message = self._vendor_message(response)
        prefix = f"[{context}] " if context else ""

        if status in (401, 403):
            msg = f"{prefix}Authentication failed ({status}): {vendor_message}"
            logger.error(msg)
            raise NestAuthenticationError(msg, vendor_message=vendor_message)
        if status == 404:
            msg = f"{prefix}Resource not found (404): {vendor_message}"
            logger.warning(msg)
            raise NestNotFoundError(msg, vendor_message=vendor_message)
        msg = f"{prefix}Update Nest thermostat failed ({status}): {vendor_message}"
        logger.error(msg)
        raise DeviceError(msg, vendor_message=vendor_message)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        context: str = "",
    ) -> Any:
        if self._client is None:
            await self.connect()
        assert self._client is not None  # noqa: S101 - guaranteed by connect()

        logger.debug("%s %s (json=%s)", method, path, json is not None)

        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            msg = f"Request to {path} timed out ({self._timeout}s)"
            logger.error(msg)
            raise DeviceError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Cannot reach Nest API: {exc}"
            logger.error(msg)
            raise DeviceError(msg) from exc

        self._raise_for_status(response, context=context or f"{method} {path}")
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise DeviceError(f"Nest API returned invalid JSON for {path}") from exc

    # -- DeviceAdapter ----------------------------------------------------------

    async def list_devices(self) -> list[Device]:
        payload = await self._request(
            "GET",
            f"/v1/enterprises/{self._project_id}/devices",
            context="list_devices",
        )
        raw_devices = payload.get("devices") if isinstance(payload, dict) else None
        if not raw_devices:
            raise DeviceError("No devices found")
        devices = [self.parse_device(item) for item in raw_devices if isinstance(item, dict)]
        logger.debug("Retrieved %d Nest device(s)", len(devices))
        return devices

    async def get_device(self, device_id: str) -> Device:
        payload = await self._request("GET", f"/v1/{device_id}", context="get_device")
        if not isinstance(payload, dict) or not payload:
            raise DeviceError(f"Empty device payload for {device_id}")
        return self.parse_device(payload)

    async def execute_command(self, device_id: str, command: DeviceCommand) -> None:
        if isinstance(command, SetEcoMode):
            body = {"command": _CMD_SET_ECO, "params": {"mode": _ECO_TO_VENDOR[command.mode]}}
        elif isinstance(command, SetHeatpoint):
            body = {"command": _CMD_SET_HEAT, "params": {"heatCelsius": float(command.celsius)}}
        else:
            raise TypeError(f"Unsupported command {command!r}")

        result = await self._request(
            "POST",
            f"/v1/{device_id}:executeCommand",
            json=body,
            context=f"executeCommand({body['command']})",
        )
        # SDM answers a successful command with an empty object
        if result:
            error = result.get("error") if isinstance(result, dict) else None
            message = error.get("message", "") if isinstance(error, dict) else str(result)
            raise DeviceError(
                f"Update Nest thermostat failed: {message}", vendor_message=message
            )
        logger.info("Executed %s on %s", body["command"], device_id)

    # -- parsing --------------------------------------------------------------

    @staticmethod
    def parse_device(item: dict[str, Any]) -> Device:
        """Build a :class:`Device` from a raw SDM device resource."""
        device_type = str(item.get("type", ""))
        traits = item.get("traits") or {}

        def trait(name: str, key: str) -> Any:
            value = traits.get(f"sdm.devices.traits.{name}")
            return value.get(key) if isinstance(value, dict) else None

        relations = item.get("parentRelations") or []
        location = relations[0].get("displayName") if relations else None
        vendor_eco = trait("ThermostatEco", "mode")

        return Device(
            device_id=str(item.get("name", "")),
            kind=_DEVICE_KINDS.get(device_type, DeviceKind.other),
            device_type=device_type,
            location=location,
            temperature_c=_safe_float(trait("Temperature", "ambientTemperatureCelsius")),
            humidity=_safe_float(trait("Humidity", "ambientHumidityPercent")),
            connectivity=trait("Connectivity", "status"),
            mode=trait("ThermostatMode", "mode"),
            eco_mode=_VENDOR_TO_ECO.get(vendor_eco) if vendor_eco else None,
            set_point_c=_safe_float(trait("ThermostatTemperatureSetpoint", "heatCelsius")),
            hvac_status=trait("ThermostatHvac", "status"),
        )

    def __repr__(self) -> str:
        return f"<NestClient project={self._project_id!r} connected={self.connected}>"


def _safe_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


__all__ = ["THERMOSTAT_TYPE", "NestAuthenticationError", "NestClient", "NestNotFoundError"]
