"""Logging Setup.

One-call configuration for the CLI and batch jobs. JSON lines suit runs
over many portfolios whose output is collected; the colored console
format is for interactive use.
"""

import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from capital_engine.logging_config.config import (
    DEFAULT_LOGGING_CONFIG,
    LogFormat,
    LoggingConfig,
    LogLevel,
)
from capital_engine.logging_config.context import get_context_dict

LEVEL_ENV_VAR = "CAPITAL_ENGINE_LOG_LEVEL"
FORMAT_ENV_VAR = "CAPITAL_ENGINE_LOG_FORMAT"

# Attributes engines attach through ``extra=``
RECORD_FIELDS = ("duration_ms", "warning_code", "method", "n_assets")


def _exception_info(record: logging.LogRecord, formatter: logging.Formatter) -> Optional[dict]:
    if not record.exc_info or record.exc_info[0] is None:
        return None
    return {
        "type": record.exc_info[0].__name__,
        "message": str(record.exc_info[1]),
        "traceback": formatter.formatException(record.exc_info),
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Fields: timestamp, level, logger, message, service, the bound run
    context, caller location (optional) and any of ``RECORD_FIELDS``
    present on the record.
    """

    def __init__(self, service_name: str = "capital-engine", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            **get_context_dict(),
        }
        if self.include_caller:
            entry.update(module=record.module, function=record.funcName, line=record.lineno)

        entry.update({key: getattr(record, key) for key in RECORD_FIELDS if hasattr(record, key)})

        exception = _exception_info(record, self)
        if exception is not None:
            entry["exception"] = exception

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines, color-coded by level when ``color`` is set."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def _level(self, levelname: str) -> str:
        if not self.color:
            return f"{levelname:8s}"
        return f"{self.COLORS.get(levelname, '')}{levelname:8s}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        line = f"{timestamp} {self._level(record.levelname)} {record.name}: {record.getMessage()}"

        code = getattr(record, "warning_code", None)
        if code:
            line += f" ({code})"

        ctx = get_context_dict()
        if ctx:
            line += " [" + ", ".join(f"{k}={v}" for k, v in ctx.items()) + "]"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def apply_env_overrides(config: LoggingConfig) -> LoggingConfig:
    """Return *config* with level / format taken from the environment if set."""
    level = os.environ.get(LEVEL_ENV_VAR, "").upper()
    if level in LogLevel.__members__:
        config = replace(config, level=LogLevel(level))

    fmt = os.environ.get(FORMAT_ENV_VAR, "").lower()
    if fmt in {f.value for f in LogFormat}:
        config = replace(config, format=LogFormat(fmt))
    return config


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Install a single stderr handler on the root logger.

    Call once at process startup; calling again replaces the handler.
    stdout stays free for the CLI's report output.

    Args:
        config: Logging configuration. Uses defaults if not provided.
                CAPITAL_ENGINE_LOG_LEVEL and CAPITAL_ENGINE_LOG_FORMAT
                override its level and format.
    """
    config = apply_env_overrides(config or DEFAULT_LOGGING_CONFIG)

    if config.format == LogFormat.JSON:
        formatter: logging.Formatter = StructuredFormatter(
            service_name=config.service_name,
            include_caller=config.include_caller,
        )
    else:
        formatter = ConsoleFormatter(color=config.color and sys.stderr.isatty())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level.value))

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Standard library logger; formatted once configure_logging() has run."""
    return logging.getLogger(name)
