"""Deadline guard for a single awaitable."""

import asyncio
import logging
from typing import Awaitable, TypeVar

from timeprint.ai.errors import RestorationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_MS = 90_000


def _discard_outcome(task: asyncio.Future) -> None:
    """Consume a late result so an abandoned task never logs as unretrieved."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Abandoned operation finished with error after timeout: {exc}")
    else:
        logger.debug("Abandoned operation finished after timeout; result discarded")


async def with_timeout(operation: Awaitable[T], duration_ms: int = DEFAULT_TIMEOUT_MS) -> T:
    """Await ``operation`` but give up once ``duration_ms`` has elapsed.

    The operation is shielded: on timeout it keeps running in the background
    and whatever it eventually produces is thrown away. Callers must treat the
    timeout as final for this invocation.

    Args:
        operation: Coroutine or future to wait on.
        duration_ms: Deadline in milliseconds. Default 90 seconds.

    Returns:
        The operation's result, if it settles in time.

    Raises:
        RestorationTimeoutError: If the deadline passes first.
        ValueError: If ``duration_ms`` is not positive.
    """
    if duration_ms <= 0:
        raise ValueError(f"duration_ms must be positive, got {duration_ms}")

    task = asyncio.ensure_future(operation)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout=duration_ms / 1000.0)
    except asyncio.TimeoutError:
        if task.done() and not task.cancelled():
            # settled in the same turn as the deadline; its own outcome wins
            return task.result()
        task.add_done_callback(_discard_outcome)
        logger.warning(f"Operation timed out after {duration_ms / 1000.0:.1f}s")
        raise RestorationTimeoutError(
            f"Request timed out after {duration_ms / 1000.0:.0f} seconds, please retry"
        ) from None
