"""faultline - Bounded retries with ordered failure history and reports.

Run a fallible operation with retries, keep every failure that happened along
the way in order, and render the history as JSON, an HTML fragment, or
plain-text log blocks. Rendered HTML can be handed to a notifier (SMTP
adapter included).

Quick Start:
    >>> from faultline import FailureAggregator, RetryPolicy, execute_with_retry, to_html
    >>>
    >>> failures = FailureAggregator()
    >>> outcome = await execute_with_retry(
    ...     refresh_catalog,
    ...     RetryPolicy(max_retries=3, wait_between_retries=10),
    ...     failures,
    ... )
    >>> outcome.succeeded, outcome.attempts
    (True, 2)
    >>> failures.count_by_kind()
    {'ConnectionError': 1}

Synchronous callers:
    >>> outcome = execute_with_retry_sync(refresh_catalog, RetryPolicy(max_retries=1))
    >>> outcome.raise_for_failure()  # RetryExhaustedError carries every failure

Reports:
    >>> print(to_json(failures))
    >>> log_failures(failures)                 # appends to <log_dir>/Exceptions.log
    >>> send_failure_report(SmtpNotifier(), failures, to_addresses=["ops@example.com"])

Configuration comes from FAULTLINE_* environment variables (see
faultline.foundation.config).
"""

from __future__ import annotations

__version__ = "0.1.0"

# Foundation
from .foundation import (
    CapturedFailure,
    FaultlineError,
    FaultlineSettings,
    InputValidationError,
    RetryExhaustedError,
    clear_settings_cache,
    failure_kind,
    get_settings,
)

# Runtime
from .runtime import (
    NO_RETRY,
    Backoff,
    ExponentialBackoff,
    FailureAggregator,
    LinearBackoff,
    RetryOutcome,
    RetryPolicy,
    execute_with_retry,
    execute_with_retry_sync,
)
from .runtime.observability import configure_from_settings, configure_logging, get_logger, log_context

# Reports & sinks
from .io import (
    append_to_file,
    append_to_file_async,
    default_log_path,
    log_failures,
    log_failures_async,
    schedule_append,
    to_entry_text,
    to_html,
    to_json,
    to_log_text,
    write_entry,
    write_entry_async,
)

# Notification
from .notify import Notification, Notifier, SmtpNotifier, send_failure_report

__all__ = [
    "__version__",
    # Foundation
    "CapturedFailure",
    "FaultlineError",
    "InputValidationError",
    "RetryExhaustedError",
    "failure_kind",
    "FaultlineSettings",
    "get_settings",
    "clear_settings_cache",
    # Runtime
    "FailureAggregator",
    "RetryPolicy",
    "RetryOutcome",
    "NO_RETRY",
    "Backoff",
    "LinearBackoff",
    "ExponentialBackoff",
    "execute_with_retry",
    "execute_with_retry_sync",
    # Logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "log_context",
    # Reports & sinks
    "to_json",
    "to_html",
    "to_log_text",
    "to_entry_text",
    "append_to_file",
    "append_to_file_async",
    "schedule_append",
    "default_log_path",
    "log_failures",
    "log_failures_async",
    "write_entry",
    "write_entry_async",
    # Notification
    "Notifier",
    "Notification",
    "SmtpNotifier",
    "send_failure_report",
]
