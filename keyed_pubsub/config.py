"""
Dispatcher configuration.

A ``PubSubConfig`` is built once per dispatcher and never changes
afterwards. Partial settings (snake_case or the camelCase option names)
are merged over the defaults.
"""
from typing import Any, Dict, Literal, Mapping, Optional, Union
import json
import os
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from loguru import logger

from .errors import ConfigError

LogLevel = Literal["error", "warn", "info", "debug"]


class PubSubConfig(BaseModel):
    """
    Immutable dispatcher settings.

    Attributes:
        max_subscribers: Per-key subscriber cap (None = unbounded)
        log_level: Threshold for diagnostics ("error" < "warn" < "info" < "debug")
        async_timeout: Per-subscriber deadline in milliseconds (<= 0 or None disables it)
    """
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    max_subscribers: Optional[int] = Field(default=None, ge=0, alias="maxSubscribers")
    log_level: LogLevel = Field(default="error", alias="logLevel")
    async_timeout: Optional[float] = Field(default=10000, alias="asyncTimeout")

    @property
    def timeout_enabled(self) -> bool:
        return self.async_timeout is not None and self.async_timeout > 0

    @classmethod
    def _normalize(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Map camelCase aliases onto field names so later keys win consistently."""
        aliases = {field.alias: name for name, field in cls.model_fields.items() if field.alias}
        return {aliases.get(key, key): value for key, value in data.items()}

    @classmethod
    def merged(cls, partial: Union["PubSubConfig", Mapping[str, Any], None] = None, **overrides) -> "PubSubConfig":
        """
        Merge partial settings over the defaults.

        Args:
            partial: Another config or a mapping of option names to values
            **overrides: Individual options, applied after ``partial``

        Raises:
            ConfigError: Unknown option or invalid value
        """
        if isinstance(partial, PubSubConfig):
            data = partial.model_dump()
        else:
            data = cls._normalize(partial or {})
        data.update(cls._normalize(overrides))
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid pub/sub configuration: {e}") from e


def load_config(filepath: str, section: str = "pubsub") -> PubSubConfig:
    """
    Load settings from a JSON or TOML file.

    If the file holds a ``section`` table only that table is used. A missing
    file yields the defaults.
    """
    if not os.path.isfile(filepath):
        logger.debug(f"No pub/sub config at {filepath}, using defaults")
        return PubSubConfig()

    try:
        if filepath.endswith('.toml'):
            import tomllib
            with open(filepath, "rb") as f:
                raw = tomllib.load(f)
        else:
            with open(filepath, "r", encoding="utf-8") as f:
                raw = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to load config from {filepath}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config in {filepath} must be a table/object, got {type(raw).__name__}")
    if isinstance(raw.get(section), dict):
        raw = raw[section]
    return PubSubConfig.merged(raw)
