"""Tests for structured logging and run context."""

import json
import logging
import sys

import pytest

from capital_engine.logging_config.config import LogFormat, LoggingConfig, LogLevel
from capital_engine.logging_config.context import (
    generate_run_id,
    get_context_dict,
    run_context,
)
from capital_engine.logging_config.performance import log_performance
from capital_engine.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
)


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def captured():
    logger = logging.getLogger("capital_engine.tests.perf")
    handler = _ListHandler()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler
    logger.removeHandler(handler)


def _record(msg="hello", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="capital_engine.test",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestLoggingConfig:
    """Tests for logging configuration dataclasses."""

    def test_default_config_values(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.CONSOLE
        assert config.include_caller is True
        assert config.service_name == "capital-engine"

    def test_log_level_enum_values(self):
        assert LogLevel("DEBUG") is LogLevel.DEBUG
        assert LogLevel.WARNING.value == "WARNING"

    def test_log_format_enum_values(self):
        assert LogFormat.JSON.value == "json"
        assert LogFormat.CONSOLE.value == "console"


class TestRunContext:
    """Tests for run context binding."""

    def test_generate_run_id_unique(self):
        ids = {generate_run_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(len(i) == 12 for i in ids)

    def test_context_binds_ids(self):
        with run_context(portfolio_id="growth", run_id="run-1") as rid:
            assert rid == "run-1"
            assert get_context_dict() == {"run_id": "run-1", "portfolio_id": "growth"}

    def test_context_cleanup_on_exit(self):
        with run_context(portfolio_id="growth"):
            pass
        assert get_context_dict() == {}

    def test_nested_contexts_restore(self):
        with run_context(portfolio_id="outer", run_id="a"):
            with run_context(portfolio_id="inner", run_id="b"):
                assert get_context_dict()["portfolio_id"] == "inner"
            assert get_context_dict() == {"run_id": "a", "portfolio_id": "outer"}

    def test_auto_generated_run_id(self):
        with run_context() as rid:
            assert rid
            assert get_context_dict() == {"run_id": rid}


class TestFormatters:
    def test_structured_formatter_json(self):
        line = StructuredFormatter(service_name="svc").format(_record())
        data = json.loads(line)
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["service"] == "svc"
        assert data["line"] == 10

    def test_structured_formatter_includes_context(self):
        with run_context(portfolio_id="p1", run_id="r1"):
            data = json.loads(StructuredFormatter().format(_record()))
        assert data["run_id"] == "r1"
        assert data["portfolio_id"] == "p1"

    def test_structured_formatter_without_caller(self):
        data = json.loads(StructuredFormatter(include_caller=False).format(_record()))
        assert "line" not in data

    def test_structured_formatter_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())
        data = json.loads(StructuredFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "boom"

    def test_structured_formatter_duration(self):
        record = _record()
        record.duration_ms = 12.5
        data = json.loads(StructuredFormatter().format(record))
        assert data["duration_ms"] == 12.5

    def test_console_formatter(self):
        with run_context(portfolio_id="p1", run_id="r1"):
            line = ConsoleFormatter().format(_record(msg="allocated"))
        assert "allocated" in line
        assert "INFO" in line
        assert "portfolio_id=p1" in line

    def test_warning_code_surfaces(self):
        record = _record(msg="Allocation degraded", level=logging.WARNING)
        record.warning_code = "infeasible_bounds"
        data = json.loads(StructuredFormatter().format(record))
        assert data["warning_code"] == "infeasible_bounds"
        assert "(infeasible_bounds)" in ConsoleFormatter(color=False).format(record)

    def test_console_without_color_has_no_escapes(self):
        line = ConsoleFormatter(color=False).format(_record())
        assert "\033[" not in line


class TestConfigureLogging:
    def test_json_handler(self, restore_root_logger):
        configure_logging(LoggingConfig(level=LogLevel.DEBUG, format=LogFormat.JSON))
        root = restore_root_logger
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert root.level == logging.DEBUG

    def test_console_handler(self, restore_root_logger):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE))
        assert isinstance(restore_root_logger.handlers[0].formatter, ConsoleFormatter)

    def test_env_overrides(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("CAPITAL_ENGINE_LOG_LEVEL", "warning")
        monkeypatch.setenv("CAPITAL_ENGINE_LOG_FORMAT", "JSON")
        configure_logging(LoggingConfig())
        root = restore_root_logger
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_get_logger(self):
        assert get_logger("capital_engine.x").name == "capital_engine.x"


class TestLogPerformance:
    def test_fast_call_logged_at_debug(self, captured):
        @log_performance(threshold_ms=10_000, logger_name="capital_engine.tests.perf")
        def add(a, b):
            return a + b

        assert add(1, 2) == 3
        assert [r.levelno for r in captured.records] == [logging.DEBUG]
        assert captured.records[0].duration_ms >= 0

    def test_slow_call_logged_at_warning(self, captured):
        @log_performance(threshold_ms=0, logger_name="capital_engine.tests.perf")
        def noop():
            return None

        noop()
        assert captured.records[-1].levelno == logging.WARNING
        assert "Slow operation" in captured.records[-1].getMessage()

    def test_exception_reraised(self, captured):
        @log_performance(threshold_ms=10_000, logger_name="capital_engine.tests.perf")
        def fail():
            raise RuntimeError("nope")

        with pytest.raises(RuntimeError):
            fail()
        assert [r.levelno for r in captured.records] == [logging.ERROR]

    def test_preserves_metadata(self):
        @log_performance()
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."
