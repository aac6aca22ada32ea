"""
Deadline guard for asynchronous subscriber results.
"""
import asyncio
from typing import Any, Awaitable, Optional

from .errors import PubSubError, SubscriberTimeoutError


def _discard(task: asyncio.Future) -> None:
    # Mark the abandoned result as retrieved so asyncio does not report it.
    if not task.cancelled():
        task.exception()


async def with_timeout(awaitable: Awaitable, timeout_ms: Optional[float], key: Any = None) -> Any:
    """
    Race ``awaitable`` against a deadline of ``timeout_ms`` milliseconds.

    If the awaitable settles first its result or exception propagates
    unchanged. If the deadline wins a ``SubscriberTimeoutError`` is raised and
    the underlying work is abandoned, not cancelled: it keeps running and its
    eventual outcome is discarded. ``None`` or a value <= 0 disables the
    deadline.

    Underlying work that ends up cancelled on its own raises ``PubSubError``.
    Cancelling the caller cancels the underlying work as well.
    """
    deadline = timeout_ms / 1000 if timeout_ms is not None and timeout_ms > 0 else None

    task = asyncio.ensure_future(awaitable)
    try:
        # asyncio.wait releases its timer on either path and never cancels ``task``
        done, _ = await asyncio.wait({task}, timeout=deadline)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task not in done:
        task.add_done_callback(_discard)
        raise SubscriberTimeoutError(key, timeout_ms)
    if task.cancelled():
        raise PubSubError(f"Async callback for key {key!r} was cancelled")
    return task.result()
