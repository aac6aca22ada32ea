"""
Per-subscriber failure isolation.

One failing subscriber must never keep the others of the same publish call
from running or settling. Every failure is logged and optionally forwarded
to a host ``on_error`` hook as a ``SubscriberError``.
"""
import asyncio
import inspect
from functools import partial
from typing import Any, Callable, Optional, Set

from .errors import PubSubError, SubscriberError, SubscriberTimeoutError
from .logging import PubSubLogger
from .registry import EventKey, Subscriber, callback_name
from .timeout import with_timeout


class ErrorIsolator:
    """
    Runs subscribers and settles their results without letting errors escape.

    Also owns the fire-and-forget tasks started by synchronous publishes,
    holding strong references until they finish.
    """

    def __init__(self, log: PubSubLogger, on_error: Optional[Callable[[SubscriberError], Any]] = None):
        self._log = log
        self._on_error = on_error
        self._tasks: Set[asyncio.Future] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def report(self, error: BaseException, key: EventKey = None, callback: Optional[Subscriber] = None) -> None:
        """Log a subscriber failure and hand it to the ``on_error`` hook."""
        if isinstance(error, SubscriberTimeoutError):
            self._log.error(
                f"Subscriber {callback_name(callback)} for key {key!r} timed out after {error.timeout_ms} ms",
                key=key,
            )
        elif key is not None:
            self._log.error(f"Error in event callback for key {key!r}: {error!r}", key=key, exception=error)
        else:
            self._log.error(f"Error in event callback: {error!r}", exception=error)

        if self._on_error is None:
            return
        try:
            self._on_error(SubscriberError(key, callback, error))
        except Exception as hook_error:
            self._log.error(f"on_error hook failed: {hook_error!r}", key=key, exception=hook_error)

    def call(self, callback: Subscriber, key: EventKey, args: tuple = (), kwargs: Optional[dict] = None) -> Any:
        """Invoke ``callback``; returns its raw result, or None if it raised."""
        try:
            return callback(*args, **(kwargs or {}))
        except Exception as e:
            self.report(e, key, callback)
            return None

    async def settle(self, result: Any, key: EventKey, callback: Subscriber, timeout_ms: Optional[float]) -> None:
        """Await an asynchronous result under the deadline. Never raises."""
        if not inspect.isawaitable(result):
            return
        try:
            await with_timeout(result, timeout_ms, key=key)
        except Exception as e:
            self.report(e, key, callback)

    def ignore(self, result: Any, key: EventKey, callback: Subscriber) -> None:
        """
        Let an asynchronous result run in the background without awaiting it.

        Its failure still goes through ``report``. Without a running event loop
        a coroutine can never be scheduled, so it is closed and reported.
        """
        if not inspect.isawaitable(result):
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            self._log.error(
                f"Subscriber {callback_name(callback)} for key {key!r} returned an awaitable "
                f"but no event loop is running; result dropped",
                key=key,
            )
            return

        task = asyncio.ensure_future(result)
        self._tasks.add(task)
        task.add_done_callback(partial(self._finished, key=key, callback=callback))

    def _finished(self, task: asyncio.Future, key: EventKey, callback: Subscriber) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.report(PubSubError(f"Async callback for key {key!r} was cancelled"), key, callback)
            return
        error = task.exception()
        if error is not None:
            self.report(error, key, callback)

    async def drain(self) -> None:
        """Wait until every fire-and-forget task has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
