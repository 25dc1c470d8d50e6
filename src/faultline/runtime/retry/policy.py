"""Retry policy and executors.

Runs a zero-argument operation, retrying on any ``Exception`` up to
``policy.max_retries`` times and recording each failure in order. Every call
returns a RetryOutcome carrying the call-local failure history, whether the
operation eventually succeeded or not.

Optimizations:
- Frozen policy for immutability and hashability
- Failures captured with model_construct on the hot path
"""

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Annotated, Any, Callable, Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from faultline.foundation.errors import CapturedFailure, InputValidationError, RetryExhaustedError
from faultline.runtime.concurrency import checkpoint, to_thread
from faultline.runtime.observability import get_logger

from .backoff import Backoff

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from faultline.foundation.config import RetrySettings
    from faultline.runtime.aggregate import FailureAggregator

T = TypeVar("T")

log = get_logger("faultline.retry")

_ASYNC_IN_SYNC = "{} returns an awaitable; run it with execute_with_retry instead"


class RetryPolicy(BaseModel):
    """How many times to retry and how long to wait in between.

    Attributes:
        max_retries: Attempts beyond the first (0 = single attempt)
        wait_between_retries: Seconds to wait between attempts (timedelta accepted)
        backoff: Optional schedule that grows the wait from wait_between_retries
        on_retry: Optional callback ``(attempt, failure, delay)`` fired before each wait

    Example:
        >>> policy = RetryPolicy(max_retries=3, wait_between_retries=2.0)
        >>> policy = RetryPolicy(max_retries=5, wait_between_retries=0.5, backoff=ExponentialBackoff(cap=30))
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,  # For Backoff protocol
        validate_default=True,
        extra="forbid",
        revalidate_instances="never",
        json_schema_extra={
            "title": "Retry Policy",
            "examples": [{"max_retries": 3, "wait_between_retries": 1.5}],
        },
    )

    max_retries: Annotated[int, Field(ge=0)] = 0
    wait_between_retries: Annotated[float, Field(ge=0.0)] = 0.0
    backoff: Backoff | None = Field(default=None, repr=False)
    on_retry: Callable[[int, CapturedFailure, float], None] | None = Field(default=None, exclude=True, repr=False)

    @field_validator("wait_between_retries", mode="before")
    @classmethod
    def _coerce_wait(cls, v: float | timedelta) -> float:
        """Accept timedelta and convert to seconds."""
        return v.total_seconds() if isinstance(v, timedelta) else v

    @computed_field
    @property
    def max_attempts(self) -> int:
        """Total attempts allowed, including the first."""
        return self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-indexed)."""
        if self.backoff is None:
            return self.wait_between_retries
        return self.backoff.delay(attempt, self.wait_between_retries)

    @classmethod
    def from_settings(cls, settings: RetrySettings | None = None) -> Self:
        """Build from FAULTLINE_RETRY_* configuration."""
        if settings is None:
            from faultline.foundation.config import get_settings
            settings = get_settings().retry
        return cls(max_retries=settings.max_retries, wait_between_retries=settings.wait_seconds)


NO_RETRY = RetryPolicy(max_retries=0)


@dataclass(frozen=True, slots=True)
class RetryOutcome(Generic[T]):
    """Result of one retry execution.

    ``len(failures) == attempts - (1 if succeeded else 0)``.
    """

    failures: tuple[CapturedFailure, ...]
    attempts: int
    succeeded: bool
    value: T | None = None

    @property
    def exhausted(self) -> bool:
        return not self.succeeded

    @property
    def last_failure(self) -> CapturedFailure | None:
        return self.failures[-1] if self.failures else None

    def raise_for_failure(self) -> T | None:
        """Return the value, or raise RetryExhaustedError with the full history."""
        if not self.succeeded:
            raise RetryExhaustedError(self.failures, self.attempts)
        return self.value

    def __bool__(self) -> bool:
        return self.succeeded


def _record(
    exc: BaseException,
    failures: list[CapturedFailure],
    aggregator: FailureAggregator | None,
) -> CapturedFailure:
    failure = CapturedFailure.from_exception(exc)
    failures.append(failure)
    if aggregator is not None:
        aggregator.append(failure)
    return failure


def _before_retry(policy: RetryPolicy, failure: CapturedFailure, attempt: int, name: str) -> float:
    """Log the retry, fire the callback, return the delay for ``attempt`` (0-indexed)."""
    delay = policy.get_delay(attempt)
    log.info("retrying", operation=name, attempt=attempt + 1, max_retries=policy.max_retries,
             delay=round(delay, 3), kind=failure.kind, error=failure.message)
    if policy.on_retry:
        policy.on_retry(attempt, failure, delay)
    return delay


def _exhausted(failures: list[CapturedFailure], attempts: int, name: str) -> RetryOutcome[Any]:
    log.warning("retries exhausted", operation=name, attempts=attempts,
                kinds=sorted({f.kind for f in failures}), error=failures[-1].message)
    return RetryOutcome(tuple(failures), attempts, succeeded=False)


def _operation_name(operation: Callable[..., object]) -> str:
    return getattr(operation, "__qualname__", None) or repr(operation)


async def _invoke(operation: Callable[[], T | Awaitable[T]]) -> T:
    """Await coroutine functions; run plain callables on a worker thread."""
    if inspect.iscoroutinefunction(operation):
        return await operation()
    result = await to_thread(operation)
    if inspect.isawaitable(result):
        return await result
    return result  # type: ignore[return-value]


async def execute_with_retry(
    operation: Callable[[], T | Awaitable[T]],
    policy: RetryPolicy | None = None,
    aggregator: FailureAggregator | None = None,
) -> RetryOutcome[T]:
    """Execute an operation, retrying on failure.

    Coroutine functions are awaited in the calling task; plain callables run
    on a worker thread so the event loop keeps serving other tasks. The wait
    between attempts is an ``asyncio.sleep``, so only this task is suspended.

    Cancellation is honoured at the wait. If an in-flight attempt is
    cancelled, its CancelledError is recorded before cancellation propagates.

    Args:
        operation: Zero-argument callable (sync or async)
        policy: Retry policy (defaults to RetryPolicy.from_settings())
        aggregator: Optional shared aggregator that also receives each failure

    Returns:
        RetryOutcome with the failures recorded during this call
    """
    if policy is None:
        policy = RetryPolicy.from_settings()
    name = _operation_name(operation)
    failures: list[CapturedFailure] = []
    attempts = 0

    while True:
        attempts += 1
        try:
            value = await _invoke(operation)
        except asyncio.CancelledError as exc:
            _record(exc, failures, aggregator)
            raise
        except Exception as exc:
            failure = _record(exc, failures, aggregator)
        else:
            if failures:
                log.info("succeeded after retry", operation=name, attempts=attempts)
            return RetryOutcome(tuple(failures), attempts, succeeded=True, value=value)

        if attempts > policy.max_retries:
            return _exhausted(failures, attempts, name)

        delay = _before_retry(policy, failure, attempts - 1, name)
        await checkpoint()
        if delay > 0:
            await asyncio.sleep(delay)


def execute_with_retry_sync(
    operation: Callable[[], T],
    policy: RetryPolicy | None = None,
    aggregator: FailureAggregator | None = None,
) -> RetryOutcome[T]:
    """Execute a sync operation with retry on the calling thread.

    Synchronous version for callers without an event loop. The wait blocks
    only the calling thread. Async operations are rejected; use
    ``execute_with_retry`` for those.
    """
    if inspect.iscoroutinefunction(operation):
        raise InputValidationError(_ASYNC_IN_SYNC.format(_operation_name(operation)), argument="operation")
    if policy is None:
        policy = RetryPolicy.from_settings()
    name = _operation_name(operation)
    failures: list[CapturedFailure] = []
    attempts = 0

    while True:
        attempts += 1
        try:
            value = operation()
        except Exception as exc:
            failure = _record(exc, failures, aggregator)
        else:
            if inspect.isawaitable(value):
                if inspect.iscoroutine(value):
                    value.close()
                raise InputValidationError(_ASYNC_IN_SYNC.format(name), argument="operation")
            if failures:
                log.info("succeeded after retry", operation=name, attempts=attempts)
            return RetryOutcome(tuple(failures), attempts, succeeded=True, value=value)

        if attempts > policy.max_retries:
            return _exhausted(failures, attempts, name)

        delay = _before_retry(policy, failure, attempts - 1, name)
        if delay > 0:
            time.sleep(delay)
