"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="HOUSECALL_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "House Call Travel API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level for the API process.")

    # Geocoding
    mapbox_access_token: Optional[str] = Field(
        default=None,
        description="Mapbox access token used for forward geocoding.",
    )
    mapbox_base_url: str = Field(default="https://api.mapbox.com")
    geocoder_timeout_seconds: float = Field(default=10.0, gt=0.0)
    geocoder_max_retries: int = Field(default=2, ge=0)
    geocoder_backoff_seconds: float = Field(default=0.5, ge=0.0)
    default_country_code: str = Field(default="za", description="Country hint passed to the geocoder.")
    default_country_name: str = Field(default="South Africa")

    # House-call defaults
    default_max_service_distance_km: float = Field(default=50.0, gt=0.0)
    base_travel_time_minutes: int = Field(default=15, ge=0)
    default_minutes_per_km: float = Field(default=2.0, ge=0.0)
    default_rate_per_km: float = Field(default=5.0, ge=0.0)
    default_minimum_fee: float = Field(default=20.0, ge=0.0)
    default_maximum_fee: float = Field(default=500.0, ge=0.0)
    default_currency: str = Field(default="ZAR")

    # Route chaining defaults, used when no travel_fee_config row is active
    chained_base_fee: float = Field(default=20.0, ge=0.0)
    chained_per_km_rate: float = Field(default=5.0, ge=0.0)
    chained_free_radius_km: float = Field(default=5.0, ge=0.0)
    chained_min_fee: float = Field(default=0.0, ge=0.0)
    chained_max_fee: Optional[float] = Field(default=None, ge=0.0)
    average_speed_kmh: float = Field(default=40.0, gt=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

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

    @field_validator("default_country_code", mode="before")
    @classmethod
    def _lower_country_code(cls, value: Any) -> str:
        return str(value).strip().lower()


settings = Settings()
