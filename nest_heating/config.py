"""Application configuration powered by Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Final
from urllib.parse import quote_plus

from pydantic import AnyUrl, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Centralized configuration object with environment fallbacks."""

    model_config = SettingsConfigDict(env_prefix="NEST_HEATING_", env_file=".env", extra="allow")

    # App
    app_name: str = "nest-heating"
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    debug: bool = False
    log_level: str = Field(default="info")
    time_zone: str = Field(default="Europe/London")
    # When set, the thermostat is not polled in the background.
    mock: bool = Field(default=False)

    # Database
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_name: str = Field(default="nest_heating")
    db_user: str = Field(default="nest_heating")
    db_password: str = Field(default="nest_heating")
    db_url: AnyUrl | str | None = Field(default=None)

    # Nest Smart Device Management API
    nest_api_url: AnyUrl | str = Field(default="https://smartdevicemanagement.googleapis.com")
    nest_project_id: str = Field(default="")
    nest_access_token: str = Field(default="")
    request_timeout: float = Field(default=15.0, gt=0)

    # Home Assistant (context oracles)
    home_assistant_url: AnyUrl | str = Field(default="http://localhost:8123")
    home_assistant_token: str = Field(default="")
    presence_entity: str = Field(default="")
    holiday_entity: str = Field(default="")
    kids_presence_entity: str = Field(default="")
    weather_entity: str = Field(default="")
    indoor_sensor_entities: str = Field(default="")

    # Heating policy
    poll_interval_minutes: int = Field(default=15, ge=1)
    cosy_outside_temp_c: float = Field(default=17.0)
    away_eco_start_hour: int = Field(default=9, ge=0, le=23)
    away_eco_end_hour: int = Field(default=15, ge=0, le=23)
    excluded_locations: str = Field(default="Garden")
    school_return_pattern: str = Field(default="Return from school")
    night_setback_enabled: bool = Field(default=False)
    night_start_hour: int = Field(default=22, ge=0, le=23)
    night_end_hour: int = Field(default=6, ge=0, le=23)

    @field_validator("time_zone")
    @classmethod
    def _validate_time_zone(cls, v: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone {v!r}") from exc
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Return a fully qualified async SQLAlchemy database URL."""

        if self.db_url:
            return str(self.db_url)
        return (
            f"postgresql+psycopg://{quote_plus(self.db_user)}:{quote_plus(self.db_password)}@"
            f"{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def excluded_location_names(self) -> list[str]:
        return _split_csv(self.excluded_locations)

    @property
    def indoor_sensor_entity_ids(self) -> list[str]:
        return _split_csv(self.indoor_sensor_entities)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


SETTINGS: Final[Settings] = get_settings()
