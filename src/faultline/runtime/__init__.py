"""Runtime: retry execution, failure aggregation, concurrency, logging."""

from .aggregate import FailureAggregator
from .retry import (
    NO_RETRY,
    Backoff,
    ExponentialBackoff,
    LinearBackoff,
    RetryOutcome,
    RetryPolicy,
    execute_with_retry,
    execute_with_retry_sync,
)

__all__ = [
    "FailureAggregator",
    "Backoff",
    "ExponentialBackoff",
    "LinearBackoff",
    "NO_RETRY",
    "RetryOutcome",
    "RetryPolicy",
    "execute_with_retry",
    "execute_with_retry_sync",
]
