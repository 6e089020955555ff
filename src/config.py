"""
Configuration management for Salon Scheduler.

Uses Pydantic Settings for type-safe environment variable loading.
Configured via .env file in project root.
"""

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./data/salon_scheduler.db",
        description="Database connection URL"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )
    api_reload: bool = Field(
        default=True,
        description="Enable auto-reload in development"
    )

    # Business timezone ("today" and "now" for lead time are evaluated here)
    timezone: str = Field(
        default="America/Santiago",
        description="IANA timezone of the business (e.g., America/Santiago)"
    )

    # Scheduling engine
    slot_grid_minutes: int = Field(
        default=30,
        gt=0,
        description="Granularity of the bookable slot grid, in minutes"
    )
    lead_time_fallback_minutes: int = Field(
        default=120,
        ge=0,
        description="Same-day lead time used when the configured value cannot be read"
    )
    settings_read_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts made when reading the configuration store"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.python_env == "production"

    @property
    def uses_postgresql(self) -> bool:
        """Check if PostgreSQL is the configured database."""
        return "postgresql" in self.database_url.lower()

    @property
    def tzinfo(self) -> ZoneInfo:
        """
        Business timezone as a tzinfo object.

        Raises:
            ValueError: If the timezone name is not a known IANA zone
        """
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {self.timezone}") from e

    def validate_production_config(self) -> None:
        """
        Validate configuration for production environment.

        Raises:
            ValueError: If required production settings are missing or invalid
        """
        if not self.is_production:
            return

        errors = []

        if not self.uses_postgresql:
            errors.append(
                "Production requires PostgreSQL. "
                "Set DATABASE_URL to a PostgreSQL connection string."
            )

        try:
            self.tzinfo
        except ValueError as e:
            errors.append(str(e))

        if errors:
            raise ValueError("Production configuration errors:\n- " + "\n- ".join(errors))


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Use this function throughout the application to access settings.

    Example:
        >>> from src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.slot_grid_minutes)
    """
    return Settings()
