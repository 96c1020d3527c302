"""Tests for logging configuration."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from src.logutils.config import (
    Environment,
    LogConfig,
    LogOutput,
    detect_environment,
    get_config,
    reset_config,
    set_config,
)

pytestmark = pytest.mark.unit

ENVIRONMENT_VARS = ("CI", "GITHUB_ACTIONS", "ENVIRONMENT", "ENV")


@pytest.fixture(autouse=True)
def reset_global_config():
    """Reset global config before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def plain_env(monkeypatch):
    """Environment with no CI or ENVIRONMENT markers set."""
    for name in ENVIRONMENT_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLogConfig:
    """Tests for LogConfig dataclass."""

    def test_defaults(self):
        config = LogConfig()
        assert config.level == "INFO"
        assert config.output == LogOutput.CONSOLE
        assert config.json_format is False
        assert config.use_rich is True
        assert config.mask_sensitive is True
        assert config.log_file is None
        assert config.max_file_size == 5 * 1024 * 1024
        assert config.backup_count == 3

    def test_custom_values(self):
        config = LogConfig(
            level="DEBUG",
            output=LogOutput.BOTH,
            log_file=Path("logs/attendance.log"),
            module_levels={"src.scraper.core": "WARNING"},
        )
        assert config.output == LogOutput.BOTH
        assert config.log_file == Path("logs/attendance.log")
        assert config.module_levels["src.scraper.core"] == "WARNING"


class TestEnvironmentDetection:
    """Tests for detect_environment()."""

    def test_ci(self, plain_env):
        plain_env.setenv("CI", "true")
        assert detect_environment() == Environment.CI

    def test_github_actions(self, plain_env):
        plain_env.setenv("GITHUB_ACTIONS", "true")
        assert detect_environment() == Environment.CI

    @pytest.mark.parametrize("value", ["prod", "production", "PRODUCTION"])
    def test_production(self, plain_env, value):
        plain_env.setenv("ENVIRONMENT", value)
        assert detect_environment() == Environment.PRODUCTION

    def test_env_alias(self, plain_env):
        plain_env.setenv("ENV", "test")
        assert detect_environment() == Environment.TESTING

    def test_pytest_run_is_testing(self, plain_env):
        # pytest sets PYTEST_CURRENT_TEST while a test runs
        assert detect_environment() == Environment.TESTING

    def test_development_fallback(self, plain_env):
        plain_env.delenv("PYTEST_CURRENT_TEST", raising=False)
        assert detect_environment() == Environment.DEVELOPMENT


class TestEnvironmentDefaults:
    """Tests for LogConfig.for_environment()."""

    def test_production(self):
        config = LogConfig.for_environment(Environment.PRODUCTION)
        assert config.level == "INFO"
        assert config.output == LogOutput.BOTH
        assert config.json_format is True
        assert config.use_rich is False

    def test_ci(self):
        config = LogConfig.for_environment(Environment.CI)
        assert config.level == "INFO"
        assert config.use_rich is False

    def test_testing(self):
        config = LogConfig.for_environment(Environment.TESTING)
        assert config.level == "DEBUG"
        assert config.use_rich is False

    def test_development(self):
        config = LogConfig.for_environment(Environment.DEVELOPMENT)
        assert config.level == "DEBUG"
        assert config.use_rich is True


class TestEnvironmentOverrides:
    """LOG_* variables override the environment defaults."""

    @patch.dict(os.environ, {"LOG_LEVEL": "warning"})
    def test_level(self):
        assert LogConfig.from_env().level == "WARNING"

    @patch.dict(os.environ, {"LOG_OUTPUT": "json"})
    def test_output(self):
        assert LogConfig.from_env().output == LogOutput.JSON

    @patch.dict(os.environ, {"LOG_OUTPUT": "carrier-pigeon"})
    def test_invalid_output_is_ignored(self):
        expected = LogConfig.for_environment(detect_environment()).output
        assert LogConfig.from_env().output == expected

    @patch.dict(os.environ, {"LOG_JSON": "true", "LOG_RICH": "0", "LOG_MASK_SENSITIVE": "false"})
    def test_flags(self):
        config = LogConfig.from_env()
        assert config.json_format is True
        assert config.use_rich is False
        assert config.mask_sensitive is False

    @patch.dict(os.environ, {"LOG_FILE": "logs/attendance.log", "LOG_MAX_SIZE": "1024", "LOG_BACKUP_COUNT": "7"})
    def test_file_settings(self):
        config = LogConfig.from_env()
        assert config.log_file == Path("logs/attendance.log")
        assert config.max_file_size == 1024
        assert config.backup_count == 7

    @patch.dict(os.environ, {"LOG_MAX_SIZE": "big"})
    def test_invalid_size_is_ignored(self):
        assert LogConfig.from_env().max_file_size == 5 * 1024 * 1024


class TestGlobalConfig:
    """Tests for get_config(), set_config() and reset_config()."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_set_config(self):
        custom = LogConfig(level="ERROR")
        set_config(custom)
        assert get_config() is custom

    def test_reset_config(self):
        first = get_config()
        reset_config()
        assert get_config() is not first
