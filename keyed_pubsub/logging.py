import sys
from typing import Any, Optional
from loguru import logger

# Ordered from most to least severe; a threshold includes everything before it.
LEVELS = ("error", "warn", "info", "debug")

_LOGURU_LEVELS = {
    "error": "ERROR",
    "warn": "WARNING",
    "info": "INFO",
    "debug": "DEBUG",
}


class PubSubLogger:
    """
    Threshold-filtered diagnostic sink backed by Loguru.

    Messages below the configured threshold are dropped before they reach
    Loguru, so host sinks only ever see what the dispatcher was asked to emit.
    """

    def __init__(self, threshold: str = "error"):
        if threshold not in LEVELS:
            raise ValueError(f"Unknown log level: {threshold}")
        self.threshold = threshold
        self._logger = logger.bind(component="pubsub")

    def enabled(self, level: str) -> bool:
        return LEVELS.index(level) <= LEVELS.index(self.threshold)

    def _emit(self, level: str, message: str, key: Any, exception: Optional[BaseException]):
        if not self.enabled(level):
            return
        bound = self._logger if key is None else self._logger.bind(event_key=key)
        # skip _emit and the public wrapper
        bound.opt(depth=2, exception=exception).log(_LOGURU_LEVELS[level], message)

    def log(self, level: str, message: str, key: Any = None, exception: Optional[BaseException] = None):
        self._emit(level, message, key, exception)

    def error(self, message: str, key: Any = None, exception: Optional[BaseException] = None):
        self._emit("error", message, key, exception)

    def warn(self, message: str, key: Any = None):
        self._emit("warn", message, key, None)

    def info(self, message: str, key: Any = None):
        self._emit("info", message, key, None)

    def debug(self, message: str, key: Any = None):
        self._emit("debug", message, key, None)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """
    Configures Loguru sinks for a host application.
    """
    # Remove default handler
    logger.remove()

    # Console Handler
    logger.add(sys.stderr, level=level, format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>")

    # File Handler
    if log_file:
        logger.add(log_file, rotation="10 MB", retention="1 week", level="DEBUG")

    logger.debug("Logging initialized.")
