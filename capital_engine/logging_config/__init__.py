"""Structured Logging.

Provides structured JSON / console logging, run-context binding and
timing of engine entry points.
"""

from capital_engine.logging_config.config import LogFormat, LoggingConfig, LogLevel
from capital_engine.logging_config.context import generate_run_id, run_context
from capital_engine.logging_config.performance import log_performance
from capital_engine.logging_config.setup import configure_logging, get_logger

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "configure_logging",
    "generate_run_id",
    "get_logger",
    "log_performance",
    "run_context",
]
