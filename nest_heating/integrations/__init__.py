"""nest-heating integration clients."""

from .context_oracles import ContextOracles, ContextSnapshot, HAContextOracles, IndoorReading
from .device_adapter import Device, DeviceAdapter, DeviceCommand, SetEcoMode, SetHeatpoint
from .ha_client import EntityState, HAClient
from .nest_client import NestClient
from .weather_service import WeatherService

__all__ = [
    "ContextOracles",
    "ContextSnapshot",
    "Device",
    "DeviceAdapter",
    "DeviceCommand",
    "EntityState",
    "HAClient",
    "HAContextOracles",
    "IndoorReading",
    "NestClient",
    "SetEcoMode",
    "SetHeatpoint",
    "WeatherService",
]
