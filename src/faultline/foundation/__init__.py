"""Foundation: failure records, error taxonomy, configuration."""

from .config import FaultlineSettings, clear_settings_cache, get_settings
from .errors import (
    CapturedFailure,
    FaultlineError,
    InputValidationError,
    RetryExhaustedError,
    failure_kind,
    format_trace,
)

__all__ = [
    "CapturedFailure",
    "FaultlineError",
    "InputValidationError",
    "RetryExhaustedError",
    "failure_kind",
    "format_trace",
    "FaultlineSettings",
    "clear_settings_cache",
    "get_settings",
]
