"""Log formatters: JSON for files and production, text for the console."""

from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from .context import get_context
from .masking import mask_dict, mask_sensitive_string


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with context and ``extra_data`` merged in."""

    def __init__(
        self,
        include_context: bool = True,
        mask_sensitive: bool = True,
        extra_fields: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.include_context = include_context
        self.mask_sensitive = mask_sensitive
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if self.mask_sensitive:
            message = mask_sensitive_string(message)

        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if self.include_context:
            payload["context"] = get_context().to_dict()

        if record.exc_info and record.exc_info[0]:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        extra = getattr(record, "extra_data", None)
        if extra:
            if self.mask_sensitive and isinstance(extra, dict):
                extra = mask_dict(extra)
            payload["extra"] = extra

        payload.update(self.extra_fields)
        return json.dumps(payload, default=str)


class StandardFormatter(logging.Formatter):
    """``TIME - LEVEL - LOGGER - [CORRELATION] - MESSAGE``"""

    DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - [%(correlation_id)s] - %(message)s"
    DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        mask_sensitive: bool = True,
    ) -> None:
        super().__init__(fmt=fmt or self.DEFAULT_FORMAT, datefmt=datefmt or self.DEFAULT_DATE_FORMAT)
        self.mask_sensitive = mask_sensitive

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = get_context().correlation_id
        text = super().format(record)
        if self.mask_sensitive:
            text = mask_sensitive_string(text)
        return text


class CompactFormatter(logging.Formatter):
    """Short ``[LEVEL] message`` lines for the CLI."""

    LEVEL_LABELS = {
        "DEBUG": "DEBUG",
        "INFO": "INFO ",
        "WARNING": "WARN ",
        "ERROR": "ERROR",
        "CRITICAL": "CRIT ",
    }

    def __init__(self, mask_sensitive: bool = True) -> None:
        super().__init__()
        self.mask_sensitive = mask_sensitive

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if self.mask_sensitive:
            message = mask_sensitive_string(message)
        label = self.LEVEL_LABELS.get(record.levelname, record.levelname)
        return f"[{label}] {message}"
