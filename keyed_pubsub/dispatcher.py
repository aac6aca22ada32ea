"""
Dispatcher - keyed publish/subscribe.

Subscribers register interest in event keys; publishers broadcast values to
every current subscriber of a key (or of all keys). Subscriber failures and
timeouts are isolated and logged, never propagated to the publisher.
"""
import asyncio
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from .config import PubSubConfig
from .errors import SubscriberError
from .isolation import ErrorIsolator
from .logging import PubSubLogger
from .registry import EventKey, Subscriber, SubscriberRegistry, callback_name, default_registry

Batch = List[Tuple[EventKey, Subscriber]]


def _noop() -> None:
    pass


class DebugView:
    """Read-only inspection of the registry behind a dispatcher."""

    def __init__(self, registry: SubscriberRegistry):
        self._registry = registry

    def get_subscribers_count(self, key: EventKey) -> int:
        return self._registry.count(key)

    def get_all_keys(self) -> List[EventKey]:
        return self._registry.keys()


class PubSub:
    """
    In-process event dispatcher.

    Dispatchers built without an explicit registry share the process-wide
    default one, so two differently configured dispatchers still see each
    other's subscriptions. Pass ``SubscriberRegistry()`` for an isolated one.

    Usage:
        pubsub = use_pubsub(asyncTimeout=500)

        unsubscribe = pubsub.subscribe("file.updated", on_update)
        await pubsub.publish("file.updated", "/foo/bar")
        pubsub.publish_sync("file.updated", "/foo/baz")
        unsubscribe()
    """

    def __init__(
        self,
        config: Optional[PubSubConfig] = None,
        registry: Optional[SubscriberRegistry] = None,
        on_error: Optional[Callable[[SubscriberError], Any]] = None,
    ):
        self._config = config or PubSubConfig()
        self._registry = registry if registry is not None else default_registry()
        self._log = PubSubLogger(self._config.log_level)
        self._isolator = ErrorIsolator(self._log, on_error=on_error)
        self.debug = DebugView(self._registry)

    @property
    def config(self) -> PubSubConfig:
        return self._config

    @property
    def registry(self) -> SubscriberRegistry:
        return self._registry

    @property
    def pending(self) -> int:
        """Number of fire-and-forget results still running."""
        return self._isolator.pending

    # --- Subscription ---

    def subscribe(self, key: EventKey, callback: Subscriber) -> Callable[[], None]:
        """
        Register ``callback`` for ``key``.

        Returns:
            A function that unsubscribes this registration. Calling it more
            than once has no further effect. When the key is already at
            ``max_subscribers`` nothing is registered and a no-op is returned.
        """
        if not callable(callback):
            raise TypeError(f"Subscriber for key {key!r} must be callable, got {type(callback).__name__}")

        limit = self._config.max_subscribers
        if limit is not None and self._registry.count(key) >= limit:
            self._log.warn(f"Max subscribers ({limit}) reached for key {key!r}", key=key)
            return _noop

        self._registry.add(key, callback)
        self._log.debug(f"Subscribed to {key!r}: {callback_name(callback)}", key=key)

        active = True

        def unsubscribe() -> None:
            nonlocal active
            if active:
                active = False
                self.unsubscribe(key, callback)

        return unsubscribe

    def on(self, key: EventKey):
        """
        Decorator form of ``subscribe``.

        Usage:
            @pubsub.on("scan.completed")
            async def on_scan(result):
                ...
        """
        def decorator(func: Subscriber) -> Subscriber:
            self.subscribe(key, func)
            return func
        return decorator

    def unsubscribe(self, key: EventKey, callback: Subscriber) -> None:
        if self._registry.remove(key, callback):
            self._log.debug(f"Unsubscribed from {key!r}: {callback_name(callback)}", key=key)

    def has_subscribers(self, key: EventKey) -> bool:
        return key in self._registry

    def clear(self) -> None:
        """Drop every subscription. In-flight publishes keep their snapshot."""
        self._registry.clear()
        self._log.debug("All subscriptions cleared")

    # --- Publishing ---

    def _batch(self, key: EventKey) -> Batch:
        return [(key, callback) for callback in self._registry.get(key) or ()]

    def _batch_all(self) -> Batch:
        return [(key, callback) for key, subscribers in self._registry.items() for callback in subscribers]

    def _deliver_sync(self, batch: Batch, args: tuple, kwargs: dict) -> None:
        for key, callback in batch:
            result = self._isolator.call(callback, key, args, kwargs)
            self._isolator.ignore(result, key, callback)

    async def _deliver(self, batch: Batch, args: tuple, kwargs: dict) -> None:
        if not batch:
            return
        # Start every subscriber in order before awaiting any of them.
        started = [(key, callback, self._isolator.call(callback, key, args, kwargs)) for key, callback in batch]
        timeout = self._config.async_timeout
        await asyncio.gather(*(
            self._isolator.settle(result, key, callback, timeout)
            for key, callback, result in started
        ))

    async def publish(self, key: EventKey, *args, **kwargs) -> None:
        """
        Publish to every subscriber of ``key`` concurrently.

        Completes once each subscriber has settled: returned, failed, or
        exceeded ``async_timeout``. Never raises on subscriber failure.
        """
        await self._deliver(self._batch(key), args, kwargs)

    def publish_sync(self, key: EventKey, *args, **kwargs) -> None:
        """
        Invoke every subscriber of ``key`` in registration order.

        Asynchronous results are not awaited; they run in the background and
        their failures are still logged.
        """
        self._deliver_sync(self._batch(key), args, kwargs)

    async def publish_all(self, *args, **kwargs) -> None:
        """``publish`` to the subscribers of every registered key at once."""
        await self._deliver(self._batch_all(), args, kwargs)

    def publish_all_sync(self, *args, **kwargs) -> None:
        """``publish_sync`` to the subscribers of every registered key."""
        self._deliver_sync(self._batch_all(), args, kwargs)

    # --- Background work ---

    async def drain(self) -> None:
        """Wait for fire-and-forget results started by synchronous publishes."""
        await self._isolator.drain()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.drain()


def use_pubsub(
    config: Union[PubSubConfig, Mapping[str, Any], None] = None,
    *,
    registry: Optional[SubscriberRegistry] = None,
    on_error: Optional[Callable[[SubscriberError], Any]] = None,
    **overrides,
) -> PubSub:
    """
    Build a dispatcher from partial settings merged over the defaults.

    Args:
        config: A ``PubSubConfig`` or a mapping of options
        registry: Registry to use (defaults to the shared process-wide one)
        on_error: Optional hook receiving every isolated ``SubscriberError``
        **overrides: Individual options, e.g. ``max_subscribers=5`` or ``asyncTimeout=500``
    """
    resolved = PubSubConfig.merged(config, **overrides)
    return PubSub(resolved, registry=registry, on_error=on_error)
