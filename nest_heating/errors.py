"""Exception taxonomy shared by the heating engine, stores and adapters."""

from __future__ import annotations


class HeatingError(Exception):
    """Base exception for all nest-heating errors."""


class StoreError(HeatingError):
    """Raised when reading or writing schedule/reading persistence fails."""


class DeviceError(HeatingError):
    """Raised when the thermostat rejects a command or cannot be listed.

    ``vendor_message`` carries the error text returned by the vendor API, when
    there is one.
    """

    def __init__(self, message: str, *, vendor_message: str | None = None) -> None:
        super().__init__(message)
        self.vendor_message = vendor_message


class ValidationError(HeatingError):
    """Raised for malformed schedule fields or non-numeric set-points."""


class NoDataError(HeatingError):
    """Raised when no indoor temperature is available to decide on."""


class ConfigError(HeatingError):
    """Raised when the master record is missing or unusable."""


__all__ = [
    "ConfigError",
    "DeviceError",
    "HeatingError",
    "NoDataError",
    "StoreError",
    "ValidationError",
]
