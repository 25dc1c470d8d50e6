"""Append-only text file sink for rendered failure logs and entries.

Each call opens the file in append mode, writes its text in a single write,
and releases the handle on every exit path. I/O errors propagate to the
caller. Existing content is never truncated.

Concurrent writers to the same path may interleave at the OS level; there is
no cross-process coordination.

Example:
    >>> log_failures(aggregator)                  # -> <log_dir>/Exceptions.log
    >>> write_entry("nightly sync finished")      # -> <log_dir>/20240103_103045.log
    >>> task = schedule_append(path, "deferred")  # await task to observe errors
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from faultline.foundation.errors import InputValidationError
from faultline.io.report import as_sequence, to_entry_text, to_log_text
from faultline.runtime.concurrency import to_thread
from faultline.runtime.observability import get_logger

if TYPE_CHECKING:
    from os import PathLike

    from faultline.io.report.renderer import Failures

    StrPath = str | PathLike[str]

log = get_logger("faultline.sink")

# Keep strong references to scheduled writes until they finish
_pending: set[asyncio.Task[Path]] = set()


def default_log_path(
    kind: Literal["failures", "entry"] = "failures",
    *,
    directory: StrPath | None = None,
    now: datetime | None = None,
) -> Path:
    """Default file for ``kind`` under the configured report directory.

    ``failures`` maps to a fixed file name (``Exceptions.log``), ``entry`` to
    a file named after the current date and time.
    """
    from faultline.foundation.config import get_settings

    report = get_settings().report
    base = Path(directory) if directory is not None else report.log_dir
    match kind:
        case "failures":
            return base / report.failure_log_name
        case "entry":
            return base / f"{(now or datetime.now()).strftime(report.entry_name_format)}.log"
        case _:
            raise InputValidationError(f"Unknown log kind: {kind!r}", argument="kind")


def append_to_file(path: StrPath, text: str) -> Path:
    """Append ``text`` plus a line terminator to ``path``."""
    if path is None:
        raise InputValidationError.missing("path")
    if text is None:
        raise InputValidationError.missing("text")
    target = Path(path)
    with target.open("a", encoding="utf-8", errors="backslashreplace") as fh:
        fh.write(f"{text}\n")
    return target


async def append_to_file_async(path: StrPath, text: str) -> Path:
    """Append on a worker thread so the event loop is never blocked."""
    return await to_thread(append_to_file, path, text)


def _report_failure(task: asyncio.Task[Path]) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    if (exc := task.exception()) is not None:
        log.exception("scheduled write failed", exc, task=task.get_name())


def schedule_append(path: StrPath, text: str) -> asyncio.Task[Path]:
    """Start an append in the background and return its task.

    Callers may await the task to observe completion. If nobody does, a
    failure is still logged rather than dropped.
    """
    task = asyncio.get_running_loop().create_task(
        append_to_file_async(path, text), name=f"faultline-append:{path}",
    )
    _pending.add(task)
    task.add_done_callback(_report_failure)
    return task


def log_failures(failures: Failures, path: StrPath | None = None) -> Path | None:
    """Append the log-text rendering of ``failures``.

    Writes nothing and returns None when there are no failures.
    """
    snapshot = as_sequence(failures)
    if not snapshot:
        return None
    return append_to_file(path or default_log_path("failures"), to_log_text(snapshot))


async def log_failures_async(failures: Failures, path: StrPath | None = None) -> Path | None:
    snapshot = as_sequence(failures)
    if not snapshot:
        return None
    return await append_to_file_async(path or default_log_path("failures"), to_log_text(snapshot))


def write_entry(entry: str, path: StrPath | None = None) -> Path:
    """Append a timestamped free-form entry (default: a new date-named file)."""
    return append_to_file(path or default_log_path("entry"), to_entry_text(entry))


async def write_entry_async(entry: str, path: StrPath | None = None) -> Path:
    return await append_to_file_async(path or default_log_path("entry"), to_entry_text(entry))
