"""Logging configuration for the attendance tracker.

Settings are resolved from the runtime environment first (development,
testing, CI or production) and then overridden by ``LOG_*`` variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

_TRUTHY = ("true", "1", "yes")


class Environment(Enum):
    """Runtime environment the tracker is running in."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"
    CI = "ci"


class LogOutput(Enum):
    """Where log records are written."""

    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"
    JSON = "json"


def _env_flag(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.lower() in _TRUTHY


def _env_int(name: str) -> int | None:
    value = os.getenv(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass
class LogConfig:
    """Logging configuration container."""

    level: str = "INFO"
    output: LogOutput = LogOutput.CONSOLE
    json_format: bool = False
    use_rich: bool = True
    mask_sensitive: bool = True
    log_file: Path | None = None

    # Rotation: 5MB per file, three backups
    max_file_size: int = 5 * 1024 * 1024
    backup_count: int = 3

    # Per-logger overrides, e.g. {"src.scraper.core": "WARNING"}
    module_levels: dict[str, str] = field(default_factory=dict)

    # Static fields added to every JSON record
    extra_fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> LogConfig:
        """Build a configuration from the environment.

        Environment variables:
            LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL
            LOG_OUTPUT: console, file, both or json
            LOG_JSON: emit JSON on the console (true/false)
            LOG_RICH: use the Rich console handler (true/false)
            LOG_MASK_SENSITIVE: mask credentials and tokens (true/false)
            LOG_FILE: path of the rotating log file
            LOG_MAX_SIZE: rotation size in bytes
            LOG_BACKUP_COUNT: number of rotated files to keep

        Returns:
            LogConfig for the detected environment
        """
        config = cls.for_environment(detect_environment())

        if level := os.getenv("LOG_LEVEL"):
            config.level = level.upper()

        if output := os.getenv("LOG_OUTPUT"):
            try:
                config.output = LogOutput(output.lower())
            except ValueError:
                pass

        json_format = _env_flag("LOG_JSON")
        if json_format is not None:
            config.json_format = json_format

        use_rich = _env_flag("LOG_RICH")
        if use_rich is not None:
            config.use_rich = use_rich

        mask_sensitive = _env_flag("LOG_MASK_SENSITIVE")
        if mask_sensitive is not None:
            config.mask_sensitive = mask_sensitive

        if log_file := os.getenv("LOG_FILE"):
            config.log_file = Path(log_file)

        if (max_size := _env_int("LOG_MAX_SIZE")) is not None:
            config.max_file_size = max_size

        if (backup_count := _env_int("LOG_BACKUP_COUNT")) is not None:
            config.backup_count = backup_count

        return config

    @classmethod
    def for_environment(cls, env: Environment) -> LogConfig:
        """Defaults for a given environment."""
        if env == Environment.PRODUCTION:
            return cls(level="INFO", output=LogOutput.BOTH, json_format=True, use_rich=False)
        if env == Environment.CI:
            return cls(level="INFO", use_rich=False)
        if env == Environment.TESTING:
            return cls(level="DEBUG", use_rich=False)
        return cls(level="DEBUG", use_rich=True)


def detect_environment() -> Environment:
    """Work out which environment the process runs in."""
    if os.getenv("CI") or os.getenv("GITHUB_ACTIONS"):
        return Environment.CI

    env_name = os.getenv("ENVIRONMENT", os.getenv("ENV", "")).lower()
    if env_name in ("prod", "production"):
        return Environment.PRODUCTION
    if env_name in ("test", "testing"):
        return Environment.TESTING

    if os.getenv("PYTEST_CURRENT_TEST"):
        return Environment.TESTING

    return Environment.DEVELOPMENT


_config: LogConfig | None = None


def get_config() -> LogConfig:
    """Return the active configuration, loading it from the environment once."""
    global _config
    if _config is None:
        _config = LogConfig.from_env()
    return _config


def set_config(config: LogConfig) -> None:
    """Replace the active configuration."""
    global _config
    _config = config


def reset_config() -> None:
    """Forget the active configuration so the next call reloads it."""
    global _config
    _config = None
