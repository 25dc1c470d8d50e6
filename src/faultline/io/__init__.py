"""I/O: report rendering and file sinks."""

from .report import to_entry_text, to_html, to_json, to_log_text
from .sink import (
    append_to_file,
    append_to_file_async,
    default_log_path,
    log_failures,
    log_failures_async,
    schedule_append,
    write_entry,
    write_entry_async,
)

__all__ = [
    "to_entry_text",
    "to_html",
    "to_json",
    "to_log_text",
    "append_to_file",
    "append_to_file_async",
    "default_log_path",
    "log_failures",
    "log_failures_async",
    "schedule_append",
    "write_entry",
    "write_entry_async",
]
