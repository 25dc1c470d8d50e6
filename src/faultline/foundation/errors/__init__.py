"""Error handling for faultline.

- CapturedFailure: immutable record of one failed attempt
- FaultlineError/InputValidationError/RetryExhaustedError: what faultline raises
- failure_kind/format_trace: helpers for building failure records
"""

from .errors import FaultlineError, InputValidationError, RetryExhaustedError
from .failure import CapturedFailure, failure_kind, format_trace

__all__ = [
    "CapturedFailure", "failure_kind", "format_trace",
    "FaultlineError", "InputValidationError", "RetryExhaustedError",
]
