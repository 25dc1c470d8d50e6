"""Sync/async bridging for retry execution and file sinks."""

from .interop import checkpoint, shutdown_executor, to_thread

__all__ = ["checkpoint", "shutdown_executor", "to_thread"]
