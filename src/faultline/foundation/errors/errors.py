"""Exception taxonomy for faultline.

Operation failures raised by caller code are never wrapped in these types;
they are captured as CapturedFailure records instead. The classes here cover
what faultline itself raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .failure import CapturedFailure


class FaultlineError(Exception):
    """Base class for errors raised by faultline."""


class InputValidationError(FaultlineError, ValueError):
    """A required argument was absent or invalid.

    Raised synchronously at the call boundary and never retried.
    """

    def __init__(self, message: str, *, argument: str | None = None) -> None:
        self.argument = argument
        super().__init__(message)

    @classmethod
    def missing(cls, argument: str) -> Self:
        """Create error for an absent required argument."""
        return cls(f"'{argument}' must not be None", argument=argument)


class RetryExhaustedError(FaultlineError):
    """Every allowed attempt failed.

    Carries the full ordered failure history, not just the last failure,
    so transient and persistent patterns can be told apart.
    """

    __slots__ = ("failures", "attempts")

    def __init__(self, failures: Sequence[CapturedFailure], attempts: int) -> None:
        self.failures = tuple(failures)
        self.attempts = attempts
        last = self.failures[-1] if self.failures else None
        detail = f": {last.kind}: {last.message}" if last else ""
        super().__init__(f"Operation failed after {attempts} attempt(s){detail}")
