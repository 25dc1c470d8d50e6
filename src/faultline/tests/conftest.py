"""Shared fixtures for faultline tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import pytest

from faultline.foundation.config import clear_settings_cache
from faultline.foundation.errors import CapturedFailure
from faultline.runtime.observability import configure_logging


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    """Silence logs and reset cached settings around each test."""
    configure_logging(format="none")
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def make_failure() -> object:
    """Factory for CapturedFailure with deterministic, increasing timestamps."""
    base = datetime(2024, 1, 3, 10, 30, tzinfo=UTC)
    counter = iter(range(10_000))

    def _make(kind: str = "ValueError", message: str = "boom", trace: str = '  File "job.py", line 1') -> CapturedFailure:
        return CapturedFailure(kind=kind, message=message, trace=trace,
                               timestamp=base + timedelta(seconds=next(counter)))

    return _make
