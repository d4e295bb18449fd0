"""Deadline wrapper shared by every renderer and backend call."""

import asyncio
from collections.abc import Awaitable
from logging import getLogger
from typing import TypeVar

from .exceptions import ISRTimeoutError

T = TypeVar("T")

logger = getLogger(__name__)


def _consume_late_result(task: "asyncio.Future[object]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Operation failed after its caller stopped waiting: %r", exc)


async def execute_with_timeout(
    operation: Awaitable[T],
    timeout_ms: float,
    message: str,
) -> T:
    """Await an operation, failing with ISRTimeoutError after timeout_ms.

    The operation itself is not cancelled when the deadline passes or the
    caller is cancelled; it keeps running in the background and a late
    failure is logged.

    Args:
        operation: Coroutine or future to await
        timeout_ms: Deadline in milliseconds
        message: Message of the raised ISRTimeoutError

    Returns:
        The result of the operation

    Raises:
        ISRTimeoutError: If the operation does not complete in time
    """
    task = asyncio.ensure_future(operation)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout_ms / 1000)
    except asyncio.TimeoutError as e:
        if task.done():
            # Completed on the same tick as the deadline
            return task.result()
        task.add_done_callback(_consume_late_result)
        raise ISRTimeoutError(message) from e
    except asyncio.CancelledError:
        if not task.done():
            task.add_done_callback(_consume_late_result)
        raise
