"""Timing of engine entry points."""

import functools
import logging
import time
from typing import Any, Callable, Optional

from capital_engine.logging_config.config import DEFAULT_LOGGING_CONFIG


def log_performance(
    threshold_ms: Optional[float] = None,
    logger_name: Optional[str] = None,
) -> Callable:
    """Log how long the wrapped call took, once per call.

    Fast calls go to DEBUG, calls at or above ``threshold_ms`` to WARNING
    and failures to ERROR; the exception propagates unchanged. The
    duration is attached to the record as ``duration_ms``.

    Example:
        @log_performance(threshold_ms=100)
        def allocate(self, assets, method):
            ...
    """
    limit_ms = DEFAULT_LOGGING_CONFIG.slow_threshold_ms if threshold_ms is None else threshold_ms

    def decorator(func: Callable) -> Callable:
        log = logging.getLogger(logger_name or func.__module__)
        name = func.__qualname__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            failure: Optional[BaseException] = None
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                failure = exc
                raise
            finally:
                elapsed = (time.perf_counter() - start) * 1000
                extra = {"duration_ms": round(elapsed, 2)}
                if failure is not None:
                    log.error("%s failed after %.1fms: %s", name, elapsed, type(failure).__name__, extra=extra)
                elif elapsed >= limit_ms:
                    log.warning("Slow operation: %s took %.1fms", name, elapsed, extra=extra)
                else:
                    log.debug("%s completed in %.1fms", name, elapsed, extra=extra)

        return wrapper

    return decorator
