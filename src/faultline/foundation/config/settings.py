"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from faultline.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.retry.max_retries
    0
    >>> settings.report.failure_log_name
    'Exceptions.log'

    # Or with environment variables:
    # FAULTLINE_RETRY_MAX_RETRIES=3
    # FAULTLINE_REPORT_LOG_DIR=/var/log/jobs
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import (
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    SecretStr,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetrySettings(BaseSettings):
    """Default retry policy used when a caller passes none."""

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_RETRY_",
        extra="ignore",
    )

    max_retries: NonNegativeInt = Field(default=0, description="Retries after the first attempt")
    wait_seconds: NonNegativeFloat = Field(default=0.0, description="Wait between attempts")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"
    colors: bool | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ReportSettings(BaseSettings):
    """Where rendered failure logs and entries land on disk."""

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_REPORT_",
        extra="ignore",
    )

    log_dir: Path = Field(default_factory=Path.cwd, description="Directory for default log files")
    failure_log_name: Annotated[str, Field(min_length=1)] = "Exceptions.log"
    entry_name_format: Annotated[str, Field(min_length=1)] = Field(
        default="%Y%m%d_%H%M%S",
        description="strftime pattern for per-entry log file names",
    )


class SmtpSettings(BaseSettings):
    """Outbound mail transport configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_SMTP_",
        extra="ignore",
    )

    host: str = "localhost"
    port: Annotated[int, Field(ge=1, le=65535)] = 25
    from_address: str | None = None
    username: str | None = None
    password: SecretStr | None = None
    use_tls: bool = False
    timeout: PositiveFloat = Field(default=30.0, description="Socket timeout in seconds")

    @computed_field
    @property
    def requires_login(self) -> bool:
        """Whether credentials are configured."""
        return bool(self.username and self.password)


class FaultlineSettings(BaseSettings):
    """Root settings for faultline.

    Loads configuration from environment variables with FAULTLINE_ prefix.
    Supports nested configuration and .env files.

    Example environment variables:
        FAULTLINE_RETRY_MAX_RETRIES=3
        FAULTLINE_RETRY_WAIT_SECONDS=2.5
        FAULTLINE_LOG_FORMAT=json
        FAULTLINE_SMTP_HOST=smtp.internal
    """

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Enable debug mode")

    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)
    smtp: SmtpSettings = Field(default_factory=SmtpSettings)


@lru_cache(maxsize=1)
def get_settings() -> FaultlineSettings:
    """Get the global settings instance (cached)."""
    return FaultlineSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
