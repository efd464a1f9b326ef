"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string (postgresql+asyncpg or sqlite+aiosqlite)",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Data provider (SportMonks football API v3)
    provider_api_token: str | None = Field(
        default=None,
        description="API token for the sports data provider",
    )
    provider_base_url: str = Field(
        default="https://api.sportmonks.com/v3/football",
        description="Base URL of the sports data provider",
    )
    provider_timeout: float = Field(
        default=30.0,
        description="Provider request timeout in seconds",
        gt=0,
    )
    provider_per_page: int = Field(
        default=50,
        description="Page size for paginated provider endpoints",
        gt=0,
        le=50,
    )

    @field_validator("provider_base_url")
    @classmethod
    def validate_provider_base_url(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            msg = "provider_base_url must be an http(s) URL"
            raise ValueError(msg)
        return v.rstrip("/")

    # Seeding
    seed_max_seasons_per_batch: int = Field(
        default=50,
        description="Maximum number of seasons accepted by one batch seed request",
        gt=0,
    )

    # Client polling
    poll_interval_seconds: float = Field(
        default=2.0,
        description="Seconds between job status polls",
        gt=0,
    )
    poll_max_attempts: int = Field(
        default=150,
        description="Maximum status polls before the client gives up (~5 minutes at 2s)",
        gt=0,
    )
    poll_max_consecutive_errors: int = Field(
        default=5,
        description="Consecutive transport errors tolerated before the client gives up",
        gt=0,
    )
    api_base_url: str = Field(
        default="http://localhost:8000/api/v1",
        description="Base URL of a running sports-sync API, used by the remote CLI commands",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
