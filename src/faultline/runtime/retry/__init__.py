"""Retry execution with ordered failure capture.

Example:
    >>> from faultline.runtime.retry import RetryPolicy, execute_with_retry
    >>> from faultline.runtime.aggregate import FailureAggregator
    >>>
    >>> failures = FailureAggregator()
    >>> outcome = await execute_with_retry(
    ...     upload_report,
    ...     RetryPolicy(max_retries=3, wait_between_retries=5),
    ...     failures,
    ... )
    >>> if not outcome.succeeded:
    ...     print(to_html(failures))
"""

from .backoff import (
    Backoff,
    ExponentialBackoff,
    LinearBackoff,
)
from .policy import (
    NO_RETRY,
    RetryOutcome,
    RetryPolicy,
    execute_with_retry,
    execute_with_retry_sync,
)

__all__ = [
    # Backoff strategies
    "Backoff",
    "ExponentialBackoff",
    "LinearBackoff",
    # Policy
    "RetryPolicy",
    "RetryOutcome",
    "NO_RETRY",
    # Execution
    "execute_with_retry",
    "execute_with_retry_sync",
]
