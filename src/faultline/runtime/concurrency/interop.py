"""Sync/async interoperability utilities.

    - to_thread: Offload sync code to a shared thread pool (context preserved)
    - checkpoint: Cooperative cancellation point
    - shutdown_executor: Release the shared pool

Example:
    >>> result = await to_thread(blocking_function, arg1, arg2)
"""

from __future__ import annotations

import asyncio
import contextvars
import functools
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TypeVar

T = TypeVar("T")

_default_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def _get_default_executor() -> ThreadPoolExecutor:
    """Get or create default thread pool executor."""
    global _default_executor
    if _default_executor is None:
        with _executor_lock:
            if _default_executor is None:
                _default_executor = ThreadPoolExecutor(thread_name_prefix="faultline-worker-")
    return _default_executor


async def to_thread(func: Callable[..., T], *args: object, **kwargs: object) -> T:
    """Run sync function in the shared thread pool.

    Like asyncio.to_thread, but on a dedicated pool so long-running
    operations do not starve the loop's default executor.
    """
    loop = asyncio.get_running_loop()
    ctx = contextvars.copy_context()
    if kwargs:
        func = functools.partial(func, **kwargs)
    return await loop.run_in_executor(_get_default_executor(), functools.partial(ctx.run, func, *args))


async def checkpoint() -> None:
    """Cooperative cancellation checkpoint.

    Yields control to the event loop, allowing pending cancellations
    to be processed.
    """
    await asyncio.sleep(0)


def shutdown_executor(wait: bool = True) -> None:
    """Shutdown the shared thread pool. A new one is created on next use."""
    global _default_executor
    with _executor_lock:
        if _default_executor is not None:
            _default_executor.shutdown(wait=wait)
            _default_executor = None
