"""Configuration management using pydantic-settings."""

from .settings import (
    FaultlineSettings,
    LoggingSettings,
    ReportSettings,
    RetrySettings,
    SmtpSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "FaultlineSettings",
    "LoggingSettings",
    "ReportSettings",
    "RetrySettings",
    "SmtpSettings",
    "clear_settings_cache",
    "get_settings",
]
