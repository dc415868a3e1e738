"""
Configuration Management for the Transaction Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Budget thresholds (80% warning, 110% rejection) are policy, not
configuration, and live in the budget service instead.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_LOG_",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Minimum log level (DEBUG, INFO, WARNING, ERROR)"
    )
    json_output: bool = Field(
        default=True,
        description="Render log lines as JSON (False = console renderer)"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Only accept stdlib level names."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Unsupported log level: {v}. Allowed: {allowed}")
        return v.upper()


class ConcurrencySettings(BaseSettings):
    """
    Retry policy for optimistic-concurrency conflicts.

    A conflicting unit of work is re-run from scratch; after the last
    attempt the conflict is surfaced to the caller.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_CONCURRENCY_",
        extra="ignore"
    )

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Total attempts per operation (1 = no retry)"
    )
    wait_multiplier: float = Field(
        default=0.05,
        ge=0.0,
        le=5.0,
        description="Exponential backoff multiplier in seconds"
    )
    wait_max: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Upper bound for a single backoff wait in seconds"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Monthly budget period boundaries are computed in this zone
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used for calendar-month budget periods"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Fail at startup on an unknown zone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for the configured zone."""
        return ZoneInfo(self.timezone)


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()

    @property
    def concurrency(self) -> ConcurrencySettings:
        return ConcurrencySettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an
    "<name>_error" entry for each section that failed.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("app", "logging", "concurrency"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
