"""Log handlers used by the tracker."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import IO

from rich.console import Console
from rich.text import Text


class RichConsoleHandler(logging.Handler):
    """Colourised console output through Rich."""

    LEVEL_STYLES = {
        "DEBUG": "dim",
        "INFO": "cyan",
        "WARNING": "yellow",
        "ERROR": "red bold",
        "CRITICAL": "red bold reverse",
    }

    def __init__(self, console: Console | None = None, show_path: bool = False) -> None:
        super().__init__()
        self.console = console or Console(stderr=True)
        self.show_path = show_path

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = Text(f"{record.levelname:<8}", style=self.LEVEL_STYLES.get(record.levelname, ""))
            text.append(" ")
            text.append(self.format(record))
            if self.show_path:
                text.append(f" ({record.filename}:{record.lineno})", style="dim")
            self.console.print(text)
        except Exception:
            self.handleError(record)


class SafeRotatingFileHandler(RotatingFileHandler):
    """Rotating UTF-8 file handler that creates its directory."""

    def __init__(
        self,
        filename: str | Path,
        max_bytes: int = 5 * 1024 * 1024,
        backup_count: int = 3,
        encoding: str = "utf-8",
    ) -> None:
        log_path = Path(filename)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding=encoding,
        )


class BufferingHandler(logging.Handler):
    """Keeps the last ``capacity`` records in memory.

    Tests attach it to assert on dropped rows and extraction diagnostics.
    """

    def __init__(self, capacity: int = 500) -> None:
        super().__init__()
        self.capacity = capacity
        self.buffer: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.buffer.append(record)
        if len(self.buffer) > self.capacity:
            del self.buffer[0]

    def get_records(self) -> list[logging.LogRecord]:
        return list(self.buffer)

    def messages(self) -> list[str]:
        return [record.getMessage() for record in self.buffer]

    def clear(self) -> None:
        self.buffer.clear()


class StreamHandlerWithFlush(logging.StreamHandler):
    """Stream handler that flushes after every record (CI logs)."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        super().__init__(stream or sys.stderr)

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()
