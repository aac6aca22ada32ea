import pytest
from loguru import logger

from keyed_pubsub import PubSub, PubSubConfig, SubscriberRegistry


@pytest.fixture
def registry():
    """Isolated registry so tests never touch the shared default one."""
    return SubscriberRegistry()


@pytest.fixture
def pubsub(registry):
    return PubSub(PubSubConfig(log_level="debug", async_timeout=200), registry=registry)


@pytest.fixture
def log_messages():
    """Collect Loguru output emitted during a test."""
    messages = []
    handler_id = logger.add(lambda msg: messages.append(msg), level="DEBUG", format="{level} | {message}")
    yield messages
    logger.remove(handler_id)
