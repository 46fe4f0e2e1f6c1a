"""Application configuration and settings management."""

from typing import Any, Literal

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTEPLANNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Route Planner Places Proxy"
    api_prefix: str = "/api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Backend services
    api_base_url: str = Field(
        default="http://localhost:4000",
        description="Base URL for the API gateway (vehicles, traffic routes).",
    )
    user_service_url: str = Field(
        default="http://localhost:4001",
        description="Base URL of the authentication / user service.",
    )
    optimize_endpoint: str = Field(
        default="http://localhost:4004/traffic/routes/optimize",
        description="Route optimization endpoint (absolute or relative to api_base_url).",
    )
    push_url: str = Field(
        default="http://localhost:4004",
        description="Socket.IO server for route optimization status updates.",
    )
    push_namespace: str = Field(default="/routes")
    places_proxy_url: str = Field(
        default="http://localhost:8000/api/places",
        description="First-party places proxy consumed by the place resolver.",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0.0)

    # Session behaviour
    refresh_interval_seconds: float = Field(
        default=30 * 60,
        gt=0.0,
        description="Periodic credential refresh interval (tokens expire after one hour).",
    )
    min_stops_for_optimization: int = Field(default=2, ge=2)
    poll_interval_seconds: float = Field(
        default=2.0,
        gt=0.0,
        description="Status poll interval while no push channel is connected.",
    )

    # Place resolution
    search_debounce_seconds: float = Field(default=0.3, ge=0.0)
    min_query_length: int = Field(default=3, ge=1)
    max_search_results: int = Field(default=8, ge=1)
    search_variants: tuple[str, ...] = Field(
        default=("{query}", "{query} city", "{query} street", "{query} address"),
        description="Geocoding variants combined for free-text search.",
    )

    # Mapping provider
    google_maps_api_key: str | None = Field(
        default=None,
        description="Server-side key for the geocoding and places APIs.",
    )
    geocoding_base_url: str = Field(default="https://maps.googleapis.com/maps/api/geocode/json")
    places_base_url: str = Field(default="https://places.googleapis.com/v1/places")
    geocoding_timeout_seconds: float = Field(default=10.0, gt=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", "search_variants", mode="before")
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


settings = Settings()
