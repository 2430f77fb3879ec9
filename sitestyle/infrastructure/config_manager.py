#!/usr/bin/env python3
"""Layered configuration manager for SiteStyle.

This module provides configuration management with:
- Precedence layers (defaults < system < user < environment < runtime)
- YAML config files
- Environment variable overrides (SITESTYLE_SECTION__KEY=value)
- Dotted-key access and deep merging
- Simple type-schema validation

Example:
    >>> config = ConfigManager()
    >>> config.load_file("~/.config/sitestyle/config.yaml")
    >>> config.get("sitestyle.imports.timeout_seconds", default=10)
"""

import copy
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from sitestyle.core.constants import SOCIAL_PATTERN, ErrorCode, Limits

ENV_PREFIX = "SITESTYLE_"
SYSTEM_CONFIG_DIR = "/etc/sitestyle"


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    SYSTEM_CONFIG = 2
    USER_CONFIG = 3
    ENVIRONMENT = 4
    RUNTIME = 5  # Highest precedence


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConfigManager:
    """Thread-safe layered configuration manager.

    Values are looked up from the highest precedence layer down:
    1. Compiled defaults (lowest)
    2. System config (/etc/sitestyle/config.yaml)
    3. User config (~/.config/sitestyle/config.yaml)
    4. Environment variables (SITESTYLE_*)
    5. Runtime updates (highest)
    """

    DEFAULT_CONFIG = {
        "sitestyle": {
            "storage": {
                "backend": "file",
                "path": "~/.config/sitestyle/storage.json",
            },
            "patterns": {
                "social": SOCIAL_PATTERN,
            },
            "imports": {
                "timeout_seconds": Limits.IMPORT_TIMEOUT_SECONDS,
                "max_workers": Limits.IMPORT_MAX_WORKERS,
                "cache_entries": Limits.IMPORT_CACHE_ENTRIES,
                "cache_size_mb": Limits.IMPORT_CACHE_SIZE_MB,
                "ttl_seconds": Limits.IMPORT_CACHE_TTL_SECONDS,
            },
            "logging": {
                "level": "INFO",
                "file": None,
            },
        }
    }

    SCHEMA = {
        "sitestyle": {
            "storage": {"backend": str, "path": str},
            "patterns": {"social": str},
            "imports": {
                "timeout_seconds": (int, float),
                "max_workers": int,
                "cache_entries": int,
                "cache_size_mb": (int, float),
                "ttl_seconds": (int, float),
            },
            "logging": {"level": str},
        }
    }

    def __init__(self, config_file: Optional[str] = None, load_environment: bool = True):
        """Initialize configuration manager.

        Args:
            config_file: Optional user config file to load
            load_environment: Whether to read SITESTYLE_* variables
        """
        self._config: Dict[ConfigSource, Dict[str, Any]] = {}
        self._lock = threading.RLock()

        self._config[ConfigSource.COMPILED_DEFAULTS] = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file:
            self.load_file(config_file)

        if load_environment:
            self._load_environment()

    def load_file(self, file_path: str, source: Optional[ConfigSource] = None) -> None:
        """Load configuration from a YAML file.

        Args:
            file_path: Path to YAML config file
            source: Configuration layer (inferred from the path if None)

        Raises:
            ConfigError: If file cannot be loaded or parsed
        """
        path = Path(file_path).expanduser().resolve()

        if not path.exists():
            raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        if source is None:
            source = self._source_for_path(str(path))

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {file_path}: {e}", ErrorCode.PARSE_ERROR)
        except OSError as e:
            raise ConfigError(f"Error reading config {file_path}: {e}", ErrorCode.INTERNAL_ERROR)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigError(f"Invalid config format in {file_path}", ErrorCode.INVALID_INPUT)

        with self._lock:
            self._config[source] = config_data

    def _source_for_path(self, file_path: str) -> ConfigSource:
        if file_path.startswith(SYSTEM_CONFIG_DIR):
            return ConfigSource.SYSTEM_CONFIG
        return ConfigSource.USER_CONFIG

    def _load_environment(self) -> None:
        """Load configuration from environment variables.

        Sections are separated by a double underscore:
        SITESTYLE_IMPORTS__TIMEOUT_SECONDS=5 -> sitestyle.imports.timeout_seconds
        """
        env_config: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = [p for p in key[len(ENV_PREFIX):].lower().split("__") if p]
            if not parts:
                continue

            current = env_config
            for part in parts[:-1]:
                current = current.setdefault(part, {})
                if not isinstance(current, dict):
                    break
            else:
                current[parts[-1]] = self._parse_env_value(value)

        if env_config:
            with self._lock:
                self._config[ConfigSource.ENVIRONMENT] = {"sitestyle": env_config}

    def _parse_env_value(self, value: str) -> Any:
        """Parse an environment value into bool, int, float or str."""
        lowered = value.lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False

        for cast in (int, float):
            try:
                return cast(value)
            except ValueError:
                pass

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dotted key.

        Args:
            key: Dot-separated key path (e.g., "sitestyle.storage.path")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        with self._lock:
            for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
                value = self._get_nested(self._config[source], key)
                if value is not None:
                    return value

            return default

    def _get_nested(self, config: Dict[str, Any], key: str) -> Optional[Any]:
        current: Any = config
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set configuration value.

        Args:
            key: Dot-separated key path
            value: Value to set
            source: Configuration layer
        """
        with self._lock:
            current = self._config.setdefault(source, {})
            parts = key.split(".")
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Get merged configuration from all layers."""
        with self._lock:
            merged: Dict[str, Any] = {}
            for source in sorted(self._config.keys(), key=lambda s: s.value):
                merged = self._deep_merge(merged, self._config[source])
            return merged

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = copy.deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)

        return result

    def validate_schema(self, schema: Optional[Dict[str, Any]] = None) -> bool:
        """Validate merged configuration against a type schema.

        Args:
            schema: Schema dictionary (defaults to SCHEMA)

        Returns:
            True if valid

        Raises:
            ConfigError: If validation fails
        """
        return self._validate_dict(self.get_all(), schema or self.SCHEMA, "")

    def _validate_dict(self, config: Dict[str, Any], schema: Dict[str, Any], prefix: str) -> bool:
        for key, expected in schema.items():
            if key not in config or config[key] is None:
                continue  # Optional fields

            value = config[key]
            path = f"{prefix}{key}"

            if isinstance(expected, dict):
                if not isinstance(value, dict):
                    raise ConfigError(f"Expected dict for {path}, got {type(value).__name__}")
                self._validate_dict(value, expected, f"{path}.")
            elif isinstance(value, bool) and expected is not bool:
                # bool is an int subclass; reject it for numeric fields
                raise ConfigError(f"Invalid type for {path}: bool")
            elif not isinstance(value, expected):
                raise ConfigError(f"Invalid type for {path}: {type(value).__name__}")

        return True


# Global config manager instance
_global_config: Optional[ConfigManager] = None


def get_config_manager(config_file: Optional[str] = None) -> ConfigManager:
    """Get or create the process-wide configuration manager."""
    global _global_config
    if _global_config is None:
        _global_config = ConfigManager(config_file)
    return _global_config


def set_global_config(config: Optional[ConfigManager]) -> None:
    """Set (or reset with None) the process-wide configuration manager."""
    global _global_config
    _global_config = config
