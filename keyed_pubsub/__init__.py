"""
keyed_pubsub - In-process Keyed Publish/Subscribe.

Provides:
- PubSub: Dispatcher with sync/async fan-out, per-subscriber timeouts and error isolation
- SubscriberRegistry: Key -> subscriber set mapping (shared default or isolated)
- PubSubConfig: Immutable settings (max_subscribers, log_level, async_timeout)

Usage:
    from keyed_pubsub import use_pubsub

    pubsub = use_pubsub(logLevel="warn", asyncTimeout=500)
    unsubscribe = pubsub.subscribe("file.updated", on_file_updated)

    await pubsub.publish("file.updated", "/foo/bar.txt")
    pubsub.publish_sync("file.updated", "/foo/bar.txt")
"""
from .config import PubSubConfig, load_config
from .dispatcher import DebugView, PubSub, use_pubsub
from .errors import ConfigError, PubSubError, SubscriberError, SubscriberTimeoutError
from .isolation import ErrorIsolator
from .logging import LEVELS, PubSubLogger, setup_logging
from .registry import EventKey, Subscriber, SubscriberRegistry, default_registry
from .timeout import with_timeout


__all__ = [
    # Dispatcher
    "PubSub",
    "DebugView",
    "use_pubsub",

    # Registry
    "SubscriberRegistry",
    "default_registry",
    "EventKey",
    "Subscriber",

    # Configuration
    "PubSubConfig",
    "load_config",

    # Errors
    "PubSubError",
    "ConfigError",
    "SubscriberError",
    "SubscriberTimeoutError",

    # Building blocks
    "ErrorIsolator",
    "with_timeout",
    "PubSubLogger",
    "LEVELS",
    "setup_logging",
]
