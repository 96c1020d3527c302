"""Tests for logger factory and utilities."""

import json
import logging

import pytest

from src.logutils.config import LogConfig, LogOutput, reset_config
from src.logutils.formatters import CompactFormatter, JSONFormatter
from src.logutils.handlers import (
    BufferingHandler,
    RichConsoleHandler,
    SafeRotatingFileHandler,
    StreamHandlerWithFlush,
)
from src.logutils.logger import (
    LoggerAdapter,
    build_handlers,
    configure_root_logger,
    get_logger,
    reset_logging,
    with_extra,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def reset_all():
    """Reset config before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def test_logger_name(request):
    """Unique logger name per test; handlers are dropped afterwards."""
    name = f"tests.logging.{request.node.name}"
    yield name
    logging.getLogger(name).handlers.clear()


class TestGetLogger:
    """Tests for get_logger function."""

    def test_logger_name(self, test_logger_name):
        logger = get_logger(test_logger_name, config=LogConfig(use_rich=False))
        assert isinstance(logger, logging.Logger)
        assert logger.name == test_logger_name

    def test_named_loggers_do_not_propagate(self, test_logger_name):
        logger = get_logger(test_logger_name, config=LogConfig(use_rich=False))
        assert logger.propagate is False

    def test_configured_only_once(self, test_logger_name):
        first = get_logger(test_logger_name, config=LogConfig(use_rich=False))
        count = len(first.handlers)

        second = get_logger(test_logger_name, config=LogConfig(output=LogOutput.BOTH))

        assert first is second
        assert len(second.handlers) == count

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR"])
    def test_levels(self, test_logger_name, level):
        logger = get_logger(test_logger_name, config=LogConfig(level=level, use_rich=False))
        assert logger.level == getattr(logging, level)

    def test_module_specific_level(self, test_logger_name):
        config = LogConfig(level="INFO", use_rich=False, module_levels={test_logger_name: "ERROR"})
        assert get_logger(test_logger_name, config=config).level == logging.ERROR


class TestBuildHandlers:
    """Handler selection from LogConfig."""

    def test_rich_console(self):
        (handler,) = build_handlers(LogConfig(use_rich=True))
        assert isinstance(handler, RichConsoleHandler)
        assert isinstance(handler.formatter, CompactFormatter)

    def test_plain_console(self):
        (handler,) = build_handlers(LogConfig(use_rich=False))
        assert isinstance(handler, StreamHandlerWithFlush)

    def test_json_console(self):
        (handler,) = build_handlers(LogConfig(json_format=True))
        assert isinstance(handler.formatter, JSONFormatter)

    def test_json_output(self):
        (handler,) = build_handlers(LogConfig(output=LogOutput.JSON))
        assert isinstance(handler.formatter, JSONFormatter)

    def test_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "attendance.log"
        handlers = build_handlers(LogConfig(output=LogOutput.BOTH, use_rich=False, log_file=log_file))

        assert len(handlers) == 2
        file_handler = handlers[1]
        assert isinstance(file_handler, SafeRotatingFileHandler)
        assert log_file.parent.exists()
        file_handler.close()

    def test_file_output_without_path(self):
        assert build_handlers(LogConfig(output=LogOutput.FILE)) == []


class TestFileLogging:
    def test_writes_json_lines(self, tmp_path, test_logger_name):
        log_file = tmp_path / "attendance.log"
        logger = get_logger(test_logger_name, config=LogConfig(output=LogOutput.FILE, log_file=log_file))

        logger.info("Saved record", extra={"extra_data": {"record_id": 7}})
        for handler in logger.handlers:
            handler.close()

        data = json.loads(log_file.read_text(encoding="utf-8").strip())
        assert data["message"] == "Saved record"
        assert data["extra"] == {"record_id": 7}


class TestRootLogger:
    def test_configured_once_and_reset(self):
        root = logging.getLogger()
        original_handlers, original_level = list(root.handlers), root.level
        try:
            configure_root_logger(LogConfig(use_rich=False))
            count = len(root.handlers)
            configure_root_logger(LogConfig(use_rich=False))
            assert len(root.handlers) == count
        finally:
            reset_logging()
            root.handlers[:] = original_handlers
            root.setLevel(original_level)


class TestLoggerAdapter:
    """Tests for with_extra() and LoggerAdapter."""

    def test_with_extra_returns_adapter(self):
        adapter = with_extra(logging.getLogger("tests.adapter"), student_id="S1")
        assert isinstance(adapter, LoggerAdapter)

    def test_process_nests_extra(self):
        adapter = LoggerAdapter(logging.getLogger("tests.adapter"), {"student_id": "S1"})
        _, kwargs = adapter.process("msg", {"extra": {"count": 3}})
        assert kwargs["extra"] == {"extra_data": {"student_id": "S1", "count": 3}}

    def test_process_merges_existing_extra_data(self):
        adapter = LoggerAdapter(logging.getLogger("tests.adapter"), {"student_id": "S1"})
        _, kwargs = adapter.process("msg", {"extra": {"extra_data": {"pattern": "table"}}})
        assert kwargs["extra"] == {"extra_data": {"student_id": "S1", "pattern": "table"}}

    def test_records_carry_bound_fields(self):
        logger = logging.getLogger("tests.adapter.records")
        logger.propagate = False
        handler = BufferingHandler()
        logger.addHandler(handler)
        try:
            with_extra(logger, student_id="S1").warning("Dropping row", extra={"field": "percentage"})
        finally:
            logger.removeHandler(handler)

        (record,) = handler.get_records()
        assert record.extra_data == {"student_id": "S1", "field": "percentage"}


class TestBufferingHandler:
    def test_capacity(self):
        handler = BufferingHandler(capacity=2)
        for message in ("one", "two", "three"):
            handler.emit(logging.makeLogRecord({"msg": message}))

        assert handler.messages() == ["two", "three"]
        handler.clear()
        assert handler.get_records() == []


class TestResetLogging:
    def test_allows_reconfiguration(self, test_logger_name):
        logger = get_logger(test_logger_name, config=LogConfig(use_rich=False))
        reset_logging()
        assert logger.handlers == []

        get_logger(test_logger_name, config=LogConfig(use_rich=False))
        assert len(logger.handlers) == 1
