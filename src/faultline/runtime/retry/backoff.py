"""Growth schedules for the wait between retry attempts.

A schedule scales the policy's ``wait_between_retries``: the first retry
waits exactly that long, later retries wait longer. Without a schedule the
wait stays constant. Durations accept seconds or a ``timedelta``.

Example:
    >>> RetryPolicy(max_retries=4, wait_between_retries=0.5, backoff=ExponentialBackoff(cap=10))
    # waits 0.5, 1.0, 2.0, 4.0
"""

from __future__ import annotations

import random
from datetime import timedelta
from typing import Annotated, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

Seconds = Annotated[float, Field(ge=0.0)]


@runtime_checkable
class Backoff(Protocol):
    """Anything that turns a retry index and the base wait into a delay."""

    def delay(self, attempt: int, base: float) -> float:
        """Seconds to wait before retry ``attempt`` (0 = first retry)."""
        ...


class _Schedule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")

    cap: Seconds | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_duration(cls, v: object) -> object:
        return v.total_seconds() if isinstance(v, timedelta) else v

    def _capped(self, seconds: float) -> float:
        return seconds if self.cap is None else min(seconds, self.cap)


class LinearBackoff(_Schedule):
    """Adds ``step`` seconds per retry: base, base + step, base + 2*step, ..."""

    step: Seconds = 1.0

    def delay(self, attempt: int, base: float) -> float:
        return self._capped(base + self.step * attempt)


class ExponentialBackoff(_Schedule):
    """Multiplies the wait by ``factor`` per retry, optionally spread by ``jitter``.

    ``jitter`` is a fraction: 0.25 scales each delay by a random factor in
    [0.75, 1.25] so concurrent callers do not retry in lockstep. The cap is
    applied after jitter.
    """

    factor: Annotated[float, Field(ge=1.0)] = 2.0
    jitter: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0

    def delay(self, attempt: int, base: float) -> float:
        seconds = base * self.factor ** attempt
        if self.jitter:
            seconds *= random.uniform(1.0 - self.jitter, 1.0 + self.jitter)
        return self._capped(seconds)
