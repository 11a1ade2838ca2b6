"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (DIRPACK_*)
3. Config files (user > system)
4. Defaults

Known keys:
    archives.level                 int, deflate level 0-9
    archives.exclude               list of glob patterns
    archives.on_invalid_pattern    ignore | error
    archives.on_unsafe_path        skip | error
    archives.debug.include_trace   bool
    archives.debug.include_stack   bool
    logging.level                  quiet | normal | verbose | debug
    logging.color                  bool
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from dirpack.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"

ENV_PREFIX = "DIRPACK_"

# Sources in priority order.
LAYERS = ("cli", "env", "user_config", "system_config", "default")

ENUM_KEYS: dict[str, tuple[str, ...]] = {
    "archives.on_invalid_pattern": ("ignore", "error"),
    "archives.on_unsafe_path": ("skip", "error"),
    "logging.level": tuple(sorted(ALLOWED_LOGGING_LEVELS)),
}


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # one of LAYERS


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy.

    This is resolver-level only and must not couple to any logging library.
    """

    level_name: str  # quiet | normal | verbose | debug
    emit_error: bool
    emit_warning: bool
    emit_info: bool
    emit_debug: bool
    sources: dict[str, ConfigSource]


def _leaf_keys(data: dict[str, Any], prefix: str = "") -> list[str]:
    keys: list[str] = []
    for name, value in data.items():
        key = f"{prefix}.{name}" if prefix else str(name)
        if isinstance(value, dict):
            keys.extend(_leaf_keys(value, key))
        else:
            keys.append(key)
    return keys


def _get_nested(data: dict[str, Any], key: str) -> Any | None:
    """Get nested value using dot notation.

    Example:
        _get_nested({'archives': {'level': 6}}, 'archives.level') -> 6
    """
    current: Any = data
    for part in key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'archives': {'level': 6}},
            user_config_path=Path('~/.config/dirpack/config.yaml')
        )

        level, source = resolver.resolve('archives.level')
        # level = 6, source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Arguments from CLI (highest priority)
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/dirpack/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/dirpack/config.yaml")
        self.defaults = self._default_config() if defaults is None else defaults

        # Loaded lazily, once per resolver.
        self._files: dict[str, dict[str, Any]] = {}

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'archives.level')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        for layer in LAYERS:
            value = self._lookup(layer, key)
            if value is not None:
                return value, layer
        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_int(self, key: str) -> int:
        """Resolve an int key, accepting numeric strings (e.g. from env)."""
        value, _src = self.resolve(key)
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be an int, got bool")
        if isinstance(value, int):
            return value
        try:
            return int(str(value).strip())
        except ValueError:
            raise ConfigError(f"Config key '{key}' must be an int, got {value!r}") from None

    def resolve_bool(self, key: str) -> bool:
        """Resolve a bool key, accepting 'true'/'false' strings."""
        value, _src = self.resolve(key)
        if isinstance(value, bool):
            return value
        norm = str(value).strip().lower()
        if norm not in ("true", "false"):
            raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")
        return norm == "true"

    def resolve_str_list(self, key: str) -> list[str]:
        """Resolve a list of strings.

        A plain string (env var) is split on commas.
        """
        value, _src = self.resolve(key)
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"Config key '{key}' must be a list of strings")
        return list(value)

    def resolve_enum(self, key: str) -> str:
        """Resolve an enum key; values are normalized to lower case."""
        value, _src = self.resolve(key)
        return self._normalize_enum(key, value)

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level.

        If the key is not provided by any source, returns DEFAULT_LOGGING_LEVEL.

        Raises:
            ConfigError: If the resolved value is invalid.
        """
        level, _src = self._resolve_logging_level_and_source()
        return level

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve canonical logging policy.

        Deterministic and side-effect free; apply it with
        dirpack.core.logging.apply_logging_policy.
        """
        level_name, src = self._resolve_logging_level_and_source()

        return LoggingPolicy(
            level_name=level_name,
            emit_error=True,
            emit_warning=True,
            emit_info=level_name != "quiet",
            emit_debug=level_name == "debug",
            sources={"level_name": src},
        )

    def effective_config(self) -> dict[str, ConfigSource]:
        """Resolve every key that has a default, keyed by its dotted name.

        Keys present only in config files are not reported: nothing reads them.
        """
        result: dict[str, ConfigSource] = {}
        for key in sorted(_leaf_keys(self.defaults)):
            value, source = self.resolve(key)
            result[key] = ConfigSource(value=value, source=source)
        return result

    def _resolve_logging_level_and_source(self) -> tuple[str, ConfigSource]:
        key = "logging.level"
        try:
            value, source = self.resolve(key)
        except ConfigError:
            return DEFAULT_LOGGING_LEVEL, ConfigSource(DEFAULT_LOGGING_LEVEL, "default")
        norm = self._normalize_enum(key, value)
        return norm, ConfigSource(value=norm, source=source)

    def _normalize_enum(self, key: str, value: Any) -> str:
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        norm = value.strip().lower()
        allowed = ENUM_KEYS[key]
        if norm not in allowed:
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed values: {', '.join(allowed)}")
        return norm

    def _lookup(self, layer: str, key: str) -> Any | None:
        if layer == "cli":
            return _get_nested(self.cli_args, key)
        if layer == "env":
            # DIRPACK_ARCHIVES_LEVEL, DIRPACK_LOGGING_LEVEL, ...
            return os.environ.get(f"{ENV_PREFIX}{key.upper().replace('.', '_')}")
        if layer == "default":
            return _get_nested(self.defaults, key)
        return _get_nested(self._file_config(layer), key)

    def _file_config(self, layer: str) -> dict[str, Any]:
        if layer not in self._files:
            path = self.user_config_path if layer == "user_config" else self.system_config_path
            self._files[layer] = self._load_yaml(path)
        return self._files[layer]

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file; a missing file or a non-mapping document is empty."""
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            "archives": {
                "level": 1,
                "exclude": [],
                "on_invalid_pattern": "ignore",
                "on_unsafe_path": "skip",
                "debug": {
                    "include_trace": False,
                    "include_stack": False,
                },
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "color": True,
            },
        }
