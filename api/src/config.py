"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- Database connection (MongoDB)
- Authentication (JWT settings, password hashing)
- API settings (CORS, rate limiting)
- Security settings
- Logging and monitoring

All settings support environment variable overrides and .env file loading.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables with the
    prefix "TRAVELBUD_API_" (e.g., TRAVELBUD_API_MONGODB_URL).

    Environment variables are loaded from:
    1. System environment
    2. .env file in the current directory
    3. Default values defined below
    """

    # =========================================================================
    # API Settings
    # =========================================================================

    app_name: str = Field(
        default="TravelBud API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="API version"
    )

    debug: bool = Field(
        default=False,
        description="Debug mode - enables verbose logging and error traces"
    )
    environment: str = Field(
        default="production",
        description="Environment: development|staging|production"
    )

    host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    port: int = Field(
        default=3001,
        description="API bind port",
        gt=0,
        lt=65536
    )

    # =========================================================================
    # Database Settings (MongoDB)
    # =========================================================================

    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URL"
    )
    mongodb_database: str = Field(
        default="travelapp",
        description="MongoDB database name"
    )
    mongodb_users_collection: str = Field(
        default="users",
        description="Collection holding user documents (favorites embedded)"
    )
    mongodb_server_selection_timeout_ms: int = Field(
        default=5000,
        description="How long to wait for a usable server before failing (ms)",
        gt=0
    )
    mongodb_max_pool_size: int = Field(
        default=50,
        description="Maximum connections in the driver pool",
        gt=0,
        le=500
    )

    # =========================================================================
    # JWT Authentication Settings
    # =========================================================================

    jwt_secret_key: str = Field(
        default="change-this-secret-key-in-production-minimum-32-chars",
        description="Secret key for JWT token signing (MUST be changed in production)",
        min_length=32
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm (HS256, HS384, HS512)"
    )
    jwt_expire_days: int = Field(
        default=7,
        description="Bearer token lifetime in days",
        gt=0,
        le=90
    )

    # =========================================================================
    # Password Hashing Settings
    # =========================================================================

    password_bcrypt_rounds: int = Field(
        default=10,
        description="BCrypt hash rounds (higher = slower but more secure)",
        ge=4,
        le=14  # 14 is max practical for production
    )

    # =========================================================================
    # CORS Settings
    # =========================================================================

    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware"
    )
    cors_origins: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    cors_allow_methods: List[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods"
    )
    cors_allow_headers: List[str] = Field(
        default=["*"],
        description="Allowed HTTP headers"
    )

    # =========================================================================
    # Rate Limiting Settings
    # =========================================================================

    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable rate limiting on the credential endpoints"
    )
    rate_limit_login: str = Field(
        default="10/minute",
        description="Limit for POST /login per client address"
    )
    rate_limit_register: str = Field(
        default="5/minute",
        description="Limit for POST /register per client address"
    )

    # =========================================================================
    # Security Settings
    # =========================================================================

    security_require_https: bool = Field(
        default=False,
        description="Require HTTPS for all requests (enable in production)"
    )
    security_headers_enabled: bool = Field(
        default=True,
        description="Enable security headers (X-Frame-Options, etc.)"
    )
    security_hsts_max_age: int = Field(
        default=31536000,  # 1 year
        description="HSTS max age (seconds)"
    )

    # =========================================================================
    # Monitoring and Observability
    # =========================================================================

    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics"
    )
    tracing_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing"
    )
    tracing_otlp_endpoint: str = Field(
        default="http://localhost:4318/v1/traces",
        description="OTLP/HTTP traces endpoint"
    )
    tracing_sample_rate: float = Field(
        default=0.1,
        description="Trace sampling rate (0.0-1.0, where 1.0 = 100%)",
        ge=0.0,
        le=1.0
    )

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: List[str]) -> List[str]:
        """Validate CORS origins are not empty."""
        if not v:
            return ["*"]
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """Only shared-secret algorithms are supported."""
        allowed = ["HS256", "HS384", "HS512"]
        if v not in allowed:
            raise ValueError(f"jwt_algorithm must be one of {allowed}, got: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def jwt_expire_seconds(self) -> int:
        """Token lifetime in seconds."""
        return self.jwt_expire_days * 24 * 60 * 60

    # =========================================================================
    # Model Config
    # =========================================================================

    model_config = SettingsConfigDict(
        env_prefix="TRAVELBUD_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once and shared
    across the application. Settings are loaded from:
    1. Environment variables with TRAVELBUD_API_ prefix
    2. .env file in the current directory
    3. Default values

    Returns:
        Settings: Cached settings instance

    Example:
        >>> from api.src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.mongodb_database)
        travelapp
    """
    return Settings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
