"""Logger factory for the attendance tracker."""

from __future__ import annotations

import logging
import sys
from typing import Any

from .config import LogConfig, LogOutput, get_config
from .formatters import CompactFormatter, JSONFormatter, StandardFormatter
from .handlers import RichConsoleHandler, SafeRotatingFileHandler, StreamHandlerWithFlush

_configured_loggers: set[str] = set()
_root_configured: bool = False


def get_logger(name: str | None = None, config: LogConfig | None = None) -> logging.Logger:
    """Return a logger configured from the active LogConfig.

    Args:
        name: Logger name, normally ``__name__``
        config: Configuration to use instead of the environment one

    Returns:
        The configured logger; repeated calls do not add handlers
    """
    logger = logging.getLogger(name)
    key = name or "root"
    if key not in _configured_loggers:
        _configure_logger(logger, config or get_config())
        _configured_loggers.add(key)
    return logger


def _configure_logger(logger: logging.Logger, config: LogConfig) -> None:
    level = config.module_levels.get(logger.name, config.level)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    # Named loggers own their handlers; only the root propagates
    if logger.name and logger.name != "root":
        logger.propagate = False

    for handler in build_handlers(config):
        logger.addHandler(handler)


def build_handlers(config: LogConfig) -> list[logging.Handler]:
    """Create the handlers described by ``config``."""
    handlers: list[logging.Handler] = []

    def json_formatter() -> JSONFormatter:
        return JSONFormatter(mask_sensitive=config.mask_sensitive, extra_fields=config.extra_fields)

    if config.output in (LogOutput.CONSOLE, LogOutput.BOTH):
        handler: logging.Handler
        if config.json_format:
            handler = StreamHandlerWithFlush(sys.stderr)
            handler.setFormatter(json_formatter())
        elif config.use_rich:
            handler = RichConsoleHandler()
            handler.setFormatter(CompactFormatter(mask_sensitive=config.mask_sensitive))
        else:
            handler = StreamHandlerWithFlush(sys.stderr)
            handler.setFormatter(StandardFormatter(mask_sensitive=config.mask_sensitive))
        handlers.append(handler)

    if config.output == LogOutput.JSON:
        handler = StreamHandlerWithFlush(sys.stderr)
        handler.setFormatter(json_formatter())
        handlers.append(handler)

    if config.output in (LogOutput.FILE, LogOutput.BOTH) and config.log_file:
        handler = SafeRotatingFileHandler(
            filename=config.log_file,
            max_bytes=config.max_file_size,
            backup_count=config.backup_count,
        )
        handler.setFormatter(json_formatter())
        handlers.append(handler)

    return handlers


def configure_root_logger(config: LogConfig | None = None) -> None:
    """Configure the root logger once, at CLI start-up."""
    global _root_configured
    if _root_configured:
        return
    _configure_logger(logging.getLogger(), config or get_config())
    _root_configured = True


def reset_logging() -> None:
    """Drop handlers from every logger configured through this module."""
    global _root_configured
    for name in _configured_loggers:
        logging.getLogger(None if name == "root" else name).handlers.clear()
    _configured_loggers.clear()
    if _root_configured:
        logging.getLogger().handlers.clear()
    _root_configured = False


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that nests its fields under ``extra_data``."""

    def __init__(self, logger: logging.Logger, extra: dict[str, Any] | None = None) -> None:
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Any) -> tuple[str, Any]:
        call_extra = kwargs.get("extra", {})
        nested = call_extra.get("extra_data", call_extra)
        kwargs["extra"] = {"extra_data": {**self.extra, **nested}}
        return msg, kwargs


def with_extra(logger: logging.Logger, **extra: Any) -> LoggerAdapter:
    """Bind structured fields to every message logged through the adapter.

    Usage:
        log = with_extra(logger, student_id="23691A0501", pattern="table")
        log.info("Subjects extracted", extra={"count": 9})
    """
    return LoggerAdapter(logger, extra)
