"""Application configuration and settings management."""

from pathlib import Path
from typing import Annotated, Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="RTC_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Bus Route Planning Console API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted run outputs.")

    # Address resolution
    geocoder_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/geocode/json",
        description="Geocoding endpoint returning Google Geocoding API style JSON.",
    )
    geocoder_api_key: Optional[str] = Field(default=None, description="API key for the geocoding service.")
    geocoder_address_suffix: str = Field(
        default=", Bhopal, Madhya Pradesh, India",
        description="Regional suffix appended to every free-text address before lookup.",
    )
    geocoder_region: str = Field(default="in", description="Region code biasing geocoder results.")
    geocoder_bias_bounds: Annotated[tuple[float, ...], NoDecode] = Field(
        default=(23.1, 77.2, 23.4, 77.6),
        description="Bias rectangle as (south, west, north, east).",
    )
    geocoder_timeout_seconds: float = Field(default=10.0, gt=0.0)
    geocoder_max_retries: int = Field(default=2, ge=0)
    geocoder_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Route planning backend
    planner_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the backend that scores and persists route alternatives.",
    )
    planner_token: Optional[str] = Field(default=None, description="Bearer token forwarded to the planner backend.")
    planner_timeout_seconds: float = Field(default=120.0, gt=0.0)
    planner_max_retries: int = Field(default=2, ge=0)
    planner_backoff_seconds: float = Field(default=1.0, ge=0.0)

    max_vehicles_per_batch: int = Field(default=20, ge=1)
    alternatives_per_vehicle: int = Field(default=3, ge=1)

    # Fleet sizing
    vehicle_capacity: int = Field(default=70, ge=1, description="Passengers carried per trip.")
    operating_hours: int = Field(default=16, ge=1, le=24, description="Daily operating window in hours.")
    layover_minutes: int = Field(default=10, ge=0, description="Turnaround time added to each round trip.")
    service_start_time: str = Field(default="06:00", description="First departure of the day (HH:MM).")

    # Map surface
    map_center: Annotated[tuple[float, ...], NoDecode] = Field(default=(23.2599, 77.4126), description="Initial map center (lat, lng).")
    map_zoom: int = Field(default=12, ge=0, le=22)

    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("service_start_time")
    @classmethod
    def _validate_start_time(cls, value: str) -> str:
        hours, _, minutes = value.partition(":")
        if not (hours.isdigit() and minutes.isdigit()) or int(hours) > 23 or int(minutes) > 59:
            raise ValueError(f"service_start_time must be HH:MM, got '{value}'")
        return f"{int(hours):02d}:{int(minutes):02d}"

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("geocoder_bias_bounds", "map_center", mode="before")
    @classmethod
    def _parse_float_tuple_from_env(cls, value: Any) -> tuple[float, ...]:
        """Parse float tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return tuple(float(item) for item in value)
        if isinstance(value, list):
            return tuple(float(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(float(item) for item in parsed)
            except (json.JSONDecodeError, TypeError, ValueError):
                pass
            return tuple(float(item.strip()) for item in value.split(",") if item.strip())
        return tuple()

    @field_validator("geocoder_bias_bounds")
    @classmethod
    def _check_bounds(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if len(value) != 4:
            raise ValueError("geocoder_bias_bounds needs (south, west, north, east)")
        south, west, north, east = value
        if south >= north or west >= east:
            raise ValueError("geocoder_bias_bounds must describe a non-empty rectangle")
        return value

    @field_validator("map_center")
    @classmethod
    def _check_center(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if len(value) != 2:
            raise ValueError("map_center needs (lat, lng)")
        return value

    @property
    def operating_window_minutes(self) -> int:
        return self.operating_hours * 60


settings = Settings()
