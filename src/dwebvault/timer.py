"""
Operation deadlines.

Races an awaitable against a timer. On timeout the caller stops
waiting; the operation itself keeps running and its eventual outcome
is discarded. Each call gets its own timer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from .errors import OperationTimeoutError

logger = logging.getLogger("dwebvault.timer")

DEFAULT_TIMEOUT_MS = 5000

T = TypeVar("T")


async def with_timeout(operation: Awaitable[T], timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS) -> T:
    """Await an operation, giving up after timeout_ms milliseconds.

    Args:
        operation: Coroutine or future to run.
        timeout_ms: Deadline in milliseconds. None waits forever.

    Returns:
        The operation's result.

    Raises:
        OperationTimeoutError: If the deadline passes first.
        Exception: Whatever the operation raised, unchanged.
    """
    task = asyncio.ensure_future(operation)
    if timeout_ms is None:
        return await task

    done, _ = await asyncio.wait({task}, timeout=max(timeout_ms, 0) / 1000)
    if task in done:
        return task.result()

    task.add_done_callback(_discard_outcome)
    logger.debug("Operation abandoned after %sms", timeout_ms)
    raise OperationTimeoutError(f"Timed out after {timeout_ms}ms")


def _discard_outcome(task: asyncio.Future) -> None:
    """Retrieve a late result so an abandoned failure is not reported as unhandled."""
    if not task.cancelled():
        task.exception()
