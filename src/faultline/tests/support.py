"""Test doubles shared across test modules."""

from __future__ import annotations


class FlakyError(Exception):
    """Raised by test operations that fail on purpose."""


class Flaky:
    """Callable that fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures: int, value: object = "done", exc: type[Exception] = FlakyError) -> None:
        self.failures = failures
        self.value = value
        self.exc = exc
        self.calls = 0

    def __call__(self) -> object:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"attempt {self.calls} failed")
        return self.value
