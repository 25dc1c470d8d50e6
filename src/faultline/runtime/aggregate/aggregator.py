"""Append-only, ordered collection of captured failures.

Insertion order is chronological call order. Entries are never deduplicated.
Appends are serialized by an internal lock, so one aggregator may be shared
by several concurrent retry executions (threads or asyncio tasks). The lock
is only held for the list operation itself, never across an await.
"""

from __future__ import annotations

import threading
from collections import Counter
from typing import TYPE_CHECKING, Callable

from faultline.foundation.errors import CapturedFailure, InputValidationError, failure_kind

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

Kind = str | type[BaseException]


def _kind_name(kind: Kind) -> str:
    return kind if isinstance(kind, str) else failure_kind(kind)


def ensure_failure(failure: object) -> CapturedFailure:
    """Return ``failure`` if it is a CapturedFailure, else raise InputValidationError."""
    if failure is None:
        raise InputValidationError.missing("failure")
    if not isinstance(failure, CapturedFailure):
        raise InputValidationError(
            f"Expected CapturedFailure, got {type(failure).__name__}", argument="failure",
        )
    return failure


class FailureAggregator:
    """Ordered failure history with query helpers.

    Performs no I/O and no formatting; hand it to the report renderers for
    that.

    Example:
        >>> agg = FailureAggregator()
        >>> await execute_with_retry(sync_inventory, RetryPolicy(max_retries=2), agg)
        >>> agg.count_by_kind()
        {'TimeoutError': 3}
    """

    __slots__ = ("_items", "_lock")

    def __init__(self, failures: Iterable[CapturedFailure] | None = None) -> None:
        self._items: list[CapturedFailure] = []
        self._lock = threading.Lock()
        if failures is not None:
            self.extend(failures)

    def append(self, failure: CapturedFailure) -> None:
        """Add a failure to the end."""
        failure = ensure_failure(failure)
        with self._lock:
            self._items.append(failure)

    def extend(self, failures: Iterable[CapturedFailure]) -> None:
        """Add many failures in order, atomically with respect to other appends."""
        if failures is None:
            raise InputValidationError.missing("failures")
        batch = [ensure_failure(f) for f in failures]
        with self._lock:
            self._items.extend(batch)

    def snapshot(self) -> tuple[CapturedFailure, ...]:
        """Consistent copy of the current history."""
        with self._lock:
            return tuple(self._items)

    def filter(self, predicate: Callable[[CapturedFailure], bool]) -> tuple[CapturedFailure, ...]:
        """All entries matching ``predicate``, in original order."""
        return tuple(f for f in self.snapshot() if predicate(f))

    def filter_by_kind(self, kind: Kind) -> tuple[CapturedFailure, ...]:
        """All entries whose kind equals ``kind``, in original order."""
        name = _kind_name(kind)
        return self.filter(lambda f: f.kind == name)

    def contains_kind(self, kind: Kind) -> bool:
        name = _kind_name(kind)
        return any(f.kind == name for f in self.snapshot())

    def flatten_messages(self, separator: str = "\n") -> str:
        """All messages joined by ``separator`` in insertion order."""
        return separator.join(f.message for f in self.snapshot())

    def count_by_kind(self) -> dict[str, int]:
        """Occurrences per distinct kind. Values sum to ``len(self)``."""
        return dict(Counter(f.kind for f in self.snapshot()))

    @property
    def last(self) -> CapturedFailure | None:
        """Most recent failure, if any."""
        with self._lock:
            return self._items[-1] if self._items else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __bool__(self) -> bool:
        return len(self) > 0

    def __iter__(self) -> Iterator[CapturedFailure]:
        return iter(self.snapshot())

    def __getitem__(self, index: int) -> CapturedFailure:
        with self._lock:
            return self._items[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FailureAggregator):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"FailureAggregator({len(self)} failures)"
