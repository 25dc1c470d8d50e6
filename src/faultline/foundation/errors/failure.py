"""CapturedFailure: immutable record of one failed attempt.

Failures are identified by an explicit ``kind`` tag captured at the point of
failure, so filtering is plain string equality rather than isinstance checks.
"""

from __future__ import annotations

import traceback
from datetime import UTC, datetime
from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field


def failure_kind(exc: BaseException | type[BaseException]) -> str:
    """Fully-qualified type name for an exception or exception class.

    Built-in exceptions are reported by bare name (``ValueError``), everything
    else as ``module.QualName``.
    """
    cls = exc if isinstance(exc, type) else type(exc)
    module = cls.__module__
    return cls.__qualname__ if module in (None, "builtins") else f"{module}.{cls.__qualname__}"


def format_trace(exc: BaseException) -> str:
    """Formatted traceback frames of ``exc`` (empty if it was never raised)."""
    return "".join(traceback.format_tb(exc.__traceback__)).rstrip()


class CapturedFailure(BaseModel):
    """One failure occurrence.

    Attributes:
        kind: Fully-qualified failure type name
        message: Exception message
        trace: Human-readable call-stack text (opaque)
        timestamp: UTC instant the failure was captured
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        revalidate_instances="never",
        json_schema_extra={
            "title": "Captured Failure",
            "examples": [{
                "kind": "ConnectionError",
                "message": "connection refused",
                "trace": '  File "job.py", line 12, in fetch\n    sock.connect(addr)',
                "timestamp": "2024-01-03T10:30:45.123456Z",
            }],
        },
    )

    kind: Annotated[str, Field(min_length=1, description="Fully-qualified failure type name")]
    message: str = Field(default="", description="Failure message")
    trace: str = Field(default="", repr=False, description="Call-stack text")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_exception(cls, exc: BaseException, *, timestamp: datetime | None = None) -> Self:
        """Capture an exception (bypasses validation; inputs are already typed)."""
        return cls.model_construct(
            kind=failure_kind(exc),
            message=str(exc),
            trace=format_trace(exc),
            timestamp=timestamp or datetime.now(UTC),
        )

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}" if self.message else self.kind
