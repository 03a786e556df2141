"""Schedule- and telemetry-driven eco/heat control for a Nest thermostat."""

__version__ = "1.0.0"
