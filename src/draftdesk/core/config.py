"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (DRAFTDESK_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from draftdesk.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"

ENV_PREFIX = "DRAFTDESK_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def default_config() -> dict[str, Any]:
    return {
        "session": {
            # Absolute ceiling and idle window of a top-level prompt (seconds).
            "timeout_seconds": 750.0,
            "idle_seconds": 600.0,
        },
        "subflow": {
            "timeout_seconds": 600.0,
            "idle_seconds": 600.0,
            "page_size": 3,
        },
        "logging": {
            "level": DEFAULT_LOGGING_LEVEL,
            "color": True,
        },
        "diagnostics": {
            "enabled": False,
            "path": str(Path.home() / ".draftdesk" / "diagnostics.jsonl"),
        },
        "store": {
            "path": str(Path.home() / ".draftdesk" / "records.yaml"),
        },
        "web": {
            "host": "127.0.0.1",
            "port": 8080,
        },
    }


class ConfigResolver:
    """Resolve configuration with strict priority.

    Example:
        resolver = ConfigResolver(cli_args={"session": {"idle_seconds": 120}})
        idle, source = resolver.resolve("session.idle_seconds")
        # idle = 120, source = "cli"
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/draftdesk/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/draftdesk/config.yaml")
        self.defaults = defaults if defaults is not None else default_config()

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve a dot-notation key.

        Returns:
            (value, source) where source is cli | env | user_config |
            system_config | default

        Raises:
            ConfigError: If key not found in any source
        """
        value = _get_nested(self.cli_args, key)
        if value is not None:
            return value, "cli"

        value = os.environ.get(ENV_PREFIX + key.upper().replace(".", "_"))
        if value is not None:
            return value, "env"

        value = _get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = _get_nested(self._get_system_config(), key)
        if value is not None:
            return value, "system_config"

        value = _get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_float(self, key: str, *, minimum: float = 0.0) -> float:
        value, src = self.resolve(key)
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be a number, got bool")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ConfigError(
                f"Config key '{key}' must be a number, got {value!r} ({src})"
            ) from None
        if number <= minimum:
            raise ConfigError(f"Config key '{key}' must be greater than {minimum}, got {number}")
        return number

    def resolve_int(self, key: str, *, minimum: int = 1) -> int:
        value, src = self.resolve(key)
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be an int, got bool")
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if not isinstance(value, int):
            raise ConfigError(f"Config key '{key}' must be an int, got {value!r} ({src})")
        if value < minimum:
            raise ConfigError(f"Config key '{key}' must be at least {minimum}, got {value}")
        return value

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level (quiet | normal | verbose | debug)."""
        try:
            value, _src = self.resolve("logging.level")
        except ConfigError:
            return DEFAULT_LOGGING_LEVEL

        if not isinstance(value, str) or not value.strip():
            raise ConfigError("Config key 'logging.level' must be a non-empty string")
        norm = value.strip().lower()
        if norm not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid 'logging.level': {value!r}. Allowed values: {allowed}")
        return norm

    def resolve_logging_color(self) -> bool:
        """Resolve and validate logging.color; env values may be true/false strings."""
        key = "logging.color"
        value, src = self.resolve(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            norm = value.strip().lower()
            if norm in _TRUE_VALUES:
                return True
            if norm in _FALSE_VALUES:
                return False
        raise ConfigError(f"Config key '{key}' must be a bool, got {value!r} ({src})")

    def _get_user_config(self) -> dict[str, Any]:
        if self._user_config is None:
            self._user_config = _load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        if self._system_config is None:
            self._system_config = _load_yaml(self.system_config_path)
        return self._system_config


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def _get_nested(data: dict[str, Any], key: str) -> Any | None:
    current: Any = data
    for part in key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


@dataclass(frozen=True)
class SessionSettings:
    """Typed timing and paging settings used by the session engine."""

    timeout: float = 750.0
    idle: float = 600.0
    subflow_timeout: float = 600.0
    subflow_idle: float = 600.0
    page_size: int = 3

    @classmethod
    def from_resolver(cls, resolver: ConfigResolver) -> SessionSettings:
        return cls(
            timeout=resolver.resolve_float("session.timeout_seconds"),
            idle=resolver.resolve_float("session.idle_seconds"),
            subflow_timeout=resolver.resolve_float("subflow.timeout_seconds"),
            subflow_idle=resolver.resolve_float("subflow.idle_seconds"),
            page_size=resolver.resolve_int("subflow.page_size"),
        )
