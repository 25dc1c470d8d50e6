"""Append-only file sink."""

from .file import (
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
    "append_to_file",
    "append_to_file_async",
    "default_log_path",
    "log_failures",
    "log_failures_async",
    "schedule_append",
    "write_entry",
    "write_entry_async",
]
