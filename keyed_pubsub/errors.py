"""
Exception types raised or reported by the pub/sub dispatcher.

Nothing here ever escapes a ``publish*`` call: subscriber failures are
wrapped, logged and handed to the optional ``on_error`` hook instead.
"""
from typing import Any, Callable, Optional


class PubSubError(Exception):
    """Base class for all pub/sub errors."""
    pass


class ConfigError(PubSubError):
    """Raised when a configuration cannot be loaded or validated."""
    pass


class SubscriberTimeoutError(PubSubError, TimeoutError):
    """A subscriber's asynchronous result did not settle before the deadline."""

    def __init__(self, key: Any = None, timeout_ms: Optional[float] = None):
        self.key = key
        self.timeout_ms = timeout_ms
        super().__init__(f"Async callback timeout after {timeout_ms} ms (key={key!r})")


class SubscriberError(PubSubError):
    """
    Wraps a failure raised by one subscriber.

    Attributes:
        key: Event key the subscriber was invoked for (None if unknown)
        callback: The subscriber that failed
        error: The original exception
    """

    def __init__(self, key: Any, callback: Optional[Callable], error: BaseException):
        self.key = key
        self.callback = callback
        self.error = error
        self.__cause__ = error
        super().__init__(f"Error in event callback for key {key!r}: {error!r}")

    @property
    def timed_out(self) -> bool:
        return isinstance(self.error, SubscriberTimeoutError)
