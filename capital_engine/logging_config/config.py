"""Logging Configuration.

Log levels, output formats and the knobs of the timing decorator.
"""

from dataclasses import dataclass, field
from enum import Enum


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """JSON lines for batch runs, console for interactive use."""
    JSON = "json"
    CONSOLE = "console"


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.CONSOLE
    include_caller: bool = True
    color: bool = True  # Console only, and only on a terminal
    slow_threshold_ms: float = 250.0  # log_performance warns above this
    service_name: str = "capital-engine"
    quiet_loggers: tuple[str, ...] = field(default_factory=lambda: ("numexpr", "numba"))


DEFAULT_LOGGING_CONFIG = LoggingConfig()
