"""
Client configuration using Pydantic Settings.

All settings can be overridden via environment variables with the prefix
"TRAVELBUD_CLIENT_" (e.g., TRAVELBUD_CLIENT_API_BASE_URL).
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Settings for the TravelBud API client and the places provider."""

    # =========================================================================
    # TravelBud API
    # =========================================================================

    api_base_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the TravelBud API"
    )
    request_timeout: float = Field(
        default=10.0,
        description="Total timeout for a single HTTP call (seconds)",
        gt=0,
        le=120
    )

    # =========================================================================
    # Google Places
    # =========================================================================

    places_api_key: str = Field(
        default="",
        description="Google Places API key"
    )
    places_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api",
        description="Google Maps web service base URL"
    )
    places_default_radius: int = Field(
        default=1500,
        description="Nearby search radius (meters)",
        gt=0,
        le=50000
    )

    # =========================================================================
    # Local storage
    # =========================================================================

    storage_path: Optional[str] = Field(
        default=None,
        description="JSON file for the token and dark mode flag; memory only when unset"
    )

    @field_validator("api_base_url", "places_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    model_config = SettingsConfigDict(
        env_prefix="TRAVELBUD_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_client_settings() -> ClientSettings:
    """Get cached client settings instance."""
    return ClientSettings()


def clear_client_settings_cache():
    """Clear the settings cache (tests)."""
    get_client_settings.cache_clear()
