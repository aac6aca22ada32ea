"""
Subscriber registry.

Maps event keys to ordered sets of callbacks. A key is present only while
its set is non-empty, so ``keys()`` and ``count()`` never report stale
entries.
"""
import inspect
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional, Tuple, Union

EventKey = Union[str, int, Hashable]
Subscriber = Callable[..., Any]

# identity token -> callback; dict order gives insertion-ordered set semantics
SubscriberSet = Dict[Hashable, Subscriber]


def identity(subscriber: Subscriber) -> Hashable:
    """
    Token matching a callback by reference, never by value.

    Bound methods are created anew on every attribute access, so they are
    matched by their instance and underlying function instead.
    """
    if inspect.ismethod(subscriber):
        return (id(subscriber.__self__), id(subscriber.__func__))
    return id(subscriber)


def callback_name(callback: Optional[Callable]) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class SubscriberRegistry:
    """
    Mapping from event key to subscriber set.

    Membership is by reference: two distinct but equal callables are two
    entries, and unhashable callables are accepted. ``obj.handler`` fetched
    twice from the same instance refers to one entry. Registered callbacks
    are held strongly, so their identity tokens stay unique while present.

    Usage:
        registry = SubscriberRegistry()
        registry.add("file.updated", on_update)
        registry.remove("file.updated", on_update)
    """

    def __init__(self):
        self._subscribers: Dict[EventKey, SubscriberSet] = {}

    def ensure(self, key: EventKey) -> SubscriberSet:
        """Return the live set for ``key``, creating an empty one if absent."""
        if key not in self._subscribers:
            self._subscribers[key] = {}
        return self._subscribers[key]

    def add(self, key: EventKey, subscriber: Subscriber) -> bool:
        """Insert ``subscriber``; returns False if it was already registered."""
        subscribers = self.ensure(key)
        token = identity(subscriber)
        if token in subscribers:
            return False
        subscribers[token] = subscriber
        return True

    def remove(self, key: EventKey, subscriber: Subscriber) -> bool:
        """Delete ``subscriber`` and drop the key once its set is empty."""
        subscribers = self._subscribers.get(key)
        token = identity(subscriber)
        if subscribers is None or token not in subscribers:
            return False
        del subscribers[token]
        if not subscribers:
            del self._subscribers[key]
        return True

    def get(self, key: EventKey) -> Optional[Tuple[Subscriber, ...]]:
        """Snapshot of the subscribers for ``key``, or None if there are none."""
        subscribers = self._subscribers.get(key)
        if not subscribers:
            return None
        return tuple(subscribers.values())

    def items(self) -> List[Tuple[EventKey, Tuple[Subscriber, ...]]]:
        """Snapshot of every key with its subscribers, in registration order."""
        return [(key, tuple(subscribers.values())) for key, subscribers in self._subscribers.items()]

    def count(self, key: EventKey) -> int:
        return len(self._subscribers.get(key, ()))

    def keys(self) -> List[EventKey]:
        return list(self._subscribers)

    def clear(self) -> None:
        self._subscribers.clear()

    def __contains__(self, key: EventKey) -> bool:
        return key in self._subscribers

    def __len__(self) -> int:
        return len(self._subscribers)

    def __iter__(self) -> Iterator[EventKey]:
        return iter(self.keys())


_default_registry = SubscriberRegistry()


def default_registry() -> SubscriberRegistry:
    """The process-wide registry shared by every dispatcher built without one."""
    return _default_registry
