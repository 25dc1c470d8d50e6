"""Render failure histories as JSON, an HTML fragment, or log text.

All renderers accept a FailureAggregator, any iterable of CapturedFailure, or
a single CapturedFailure (rendered as a one-element history). They work on a
snapshot and never mutate the source. Empty input renders an empty result.

Security: ``to_html`` inserts failure text verbatim, without escaping. Failure
messages or traces that carry untrusted input become an injection risk if the
fragment is displayed in a browser.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from io import StringIO

import orjson

from faultline.foundation.errors import CapturedFailure, InputValidationError
from faultline.runtime.aggregate import FailureAggregator, ensure_failure

Failures = FailureAggregator | Iterable[CapturedFailure] | CapturedFailure

DELIMITER = "-" * 76
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_TABLE_OPEN = "<table style='border-collapse: collapse; width: 100%;'>"
_LABEL_ROW = "<tr><td colspan='2'><strong>{}:</strong></td></tr>"
_VALUE_ROW = "<tr><td colspan='2' style='padding-left: 20px;'>{}</td></tr>"
_TRACE_ROW = "<tr><td colspan='2'><div style='padding-left: 20px;'><pre>{}</pre></div></td></tr>"
_SPACER_ROW = "<tr><td colspan='2' style='padding: 10px 0;'></td></tr>"


def as_sequence(failures: Failures | None) -> tuple[CapturedFailure, ...]:
    """Resolve any accepted input to an ordered snapshot."""
    match failures:
        case None:
            raise InputValidationError.missing("failures")
        case CapturedFailure():
            return (failures,)
        case FailureAggregator():
            return failures.snapshot()
        case _:
            return tuple(ensure_failure(f) for f in failures)


def _utf8(s: str) -> str:
    return s.encode("utf-8", "backslashreplace").decode("utf-8")


def _render_time(rendered_at: datetime | None) -> str:
    return (rendered_at or datetime.now()).strftime(_TIMESTAMP_FORMAT)


def to_json(failures: Failures) -> str:
    """Pretty-printed JSON array of ``{"message", "trace", "kind"}`` objects.

    Lone surrogates (from undecodable file names) are written as ``\\udcXX``
    escapes since they cannot be encoded as UTF-8.
    """
    payload = [
        {"message": _utf8(f.message), "trace": _utf8(f.trace), "kind": _utf8(f.kind)}
        for f in as_sequence(failures)
    ]
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode()


def to_html(failures: Failures) -> str:
    """HTML fragment: heading plus a table with one ``<tbody>`` row group per failure."""
    buf = StringIO()
    buf.write("<h2>Exceptions:</h2>")
    buf.write(_TABLE_OPEN)
    for f in as_sequence(failures):
        buf.write("<tbody>")
        buf.write(_LABEL_ROW.format("Type"))
        buf.write(_VALUE_ROW.format(f.kind))
        buf.write(_LABEL_ROW.format("Message"))
        buf.write(_VALUE_ROW.format(f.message))
        buf.write(_LABEL_ROW.format("Stack Trace"))
        buf.write(_TRACE_ROW.format(f.trace))
        buf.write(_SPACER_ROW)
        buf.write("</tbody>")
    buf.write("</table>")
    return buf.getvalue()


def to_log_text(failures: Failures, *, rendered_at: datetime | None = None) -> str:
    """Plain-text log blocks, one per failure.

    The timestamp line carries the render time, not the failure's own
    timestamp.
    """
    stamp = _render_time(rendered_at)
    return "".join(
        f"Timestamp: {stamp}\n"
        f"Exception: {f.kind}\n"
        f"Message: {f.message}\n"
        f"StackTrace: {f.trace}\n"
        f"\n{DELIMITER}\n\n"
        for f in as_sequence(failures)
    )


def to_entry_text(entry: str, *, rendered_at: datetime | None = None) -> str:
    """Plain-text block for a free-form log entry."""
    if entry is None:
        raise InputValidationError.missing("entry")
    return f"Timestamp: {_render_time(rendered_at)}\nEntry: {entry}\n\n{DELIMITER}\n\n"
