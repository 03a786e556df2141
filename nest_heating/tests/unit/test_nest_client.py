"""Unit tests for the Nest SDM client using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from nest_heating.errors import DeviceError
from nest_heating.integrations.device_adapter import SetEcoMode, SetHeatpoint
from nest_heating.integrations.nest_client import NestAuthenticationError, NestClient
from nest_heating.models.enums import DeviceKind, EcoMode

BASE = "https://smartdevicemanagement.googleapis.com"
THERMOSTAT = {
    "name": "enterprises/proj/devices/hall",
    "type": "sdm.devices.types.THERMOSTAT",
    "traits": {
        "sdm.devices.traits.Temperature": {"ambientTemperatureCelsius": 18.7},
        "sdm.devices.traits.Humidity": {"ambientHumidityPercent": 52},
        "sdm.devices.traits.Connectivity": {"status": "ONLINE"},
        "sdm.devices.traits.ThermostatMode": {"mode": "HEAT"},
        "sdm.devices.traits.ThermostatEco": {"mode": "MANUAL_ECO"},
        "sdm.devices.traits.ThermostatTemperatureSetpoint": {"heatCelsius": 19.5},
        "sdm.devices.traits.ThermostatHvac": {"status": "OFF"},
    },
    "parentRelations": [{"parent": "enterprises/proj/structures/s/rooms/r", "displayName": "Hall"}],
}
CAMERA = {"name": "enterprises/proj/devices/cam", "type": "sdm.devices.types.CAMERA"}


def _client(handler) -> NestClient:
    return NestClient(
        BASE, project_id="proj", token="token", transport=httpx.MockTransport(handler)
    )


class TestListing:
    async def test_parses_thermostat_traits(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/enterprises/proj/devices"
            assert request.headers["Authorization"] == "Bearer token"
            return httpx.Response(200, json={"devices": [THERMOSTAT, CAMERA]})

        async with _client(handler) as client:
            devices = await client.list_devices()
            thermostats = await client.list_thermostats()

        assert [d.kind for d in devices] == [DeviceKind.thermostat, DeviceKind.camera]
        (hall,) = thermostats
        assert hall.location == "Hall"
        assert hall.temperature_c == 18.7
        assert hall.eco_mode == EcoMode.on
        assert hall.set_point_c == 19.5
        assert hall.hvac_status == "OFF"

    async def test_empty_listing_is_device_error(self):
        async with _client(lambda request: httpx.Response(200, json={})) as client:
            with pytest.raises(DeviceError, match="No devices found"):
                await client.list_devices()

    async def test_unauthorised(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": {"message": "Token expired"}})

        async with _client(handler) as client:
            with pytest.raises(NestAuthenticationError) as excinfo:
                await client.list_devices()

        assert excinfo.value.vendor_message == "Token expired"

    async def test_timeout_is_device_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with _client(handler) as client:
            with pytest.raises(DeviceError, match="timed out"):
                await client.list_devices()


class TestCommands:
    async def test_eco_mode_uses_vendor_value(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/enterprises/proj/devices/hall:executeCommand"
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={})

        async with _client(handler) as client:
            await client.execute_command("enterprises/proj/devices/hall", SetEcoMode(EcoMode.off))
            await client.execute_command("enterprises/proj/devices/hall", SetHeatpoint(20.5))

        assert seen == [
            {"command": "sdm.devices.commands.ThermostatEco.SetMode", "params": {"mode": "OFF"}},
            {
                "command": "sdm.devices.commands.ThermostatTemperatureSetpoint.SetHeat",
                "params": {"heatCelsius": 20.5},
            },
        ]

    async def test_error_payload_carries_vendor_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"error": {"code": 400, "message": "Thermostat is in eco mode"}}
            )

        async with _client(handler) as client:
            with pytest.raises(DeviceError) as excinfo:
                await client.execute_command("enterprises/proj/devices/hall", SetHeatpoint(21))

        assert excinfo.value.vendor_message == "Thermostat is in eco mode"

    async def test_non_empty_success_body_is_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": {"message": "partial"}})

        async with _client(handler) as client:
            with pytest.raises(DeviceError, match="partial"):
                await client.execute_command("devices/x", SetEcoMode(EcoMode.on))


async def test_connect_requires_credentials():
    client = NestClient(BASE, project_id="", token="")

    with pytest.raises(DeviceError):
        await client.connect()
