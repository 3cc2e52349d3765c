"""Debug tracing utilities for the table engine.

Run with journaltable-debug to send output to the console.
The DEBUG_PERF flag controls whether stage timings are logged.

Usage:
    from .debug_trace import logger, perf_timer

    logger.debug("Resolving schema")

    with perf_timer("compute", row_count=len(records)):
        view = engine.compute()
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable
from contextlib import contextmanager
from functools import wraps
from typing import Any

# Set to False to silence stage timings even in debug mode
DEBUG_PERF = True

logger = logging.getLogger("journaltable")


def get_logger(name: str) -> logging.Logger:
    """Get a child of the package logger (e.g. "journaltable.spans")."""
    return logger.getChild(name)


def setup_debug_logging(debug: bool | None = None) -> None:
    """Configure console logging.

    Call this once at startup. Without an explicit flag, debug output is
    enabled only when a console is attached.
    """
    if logger.handlers:
        return

    if debug is None:
        debug = sys.stdout is not None and hasattr(sys.stdout, "write")

    if debug:
        logger.setLevel(logging.DEBUG)
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter(
            "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    else:
        logger.setLevel(logging.WARNING)


@contextmanager
def perf_timer(operation: str, row_count: int | None = None):
    """Context manager for timing a stage.

    Args:
        operation: Name of the operation being timed
        row_count: Optional row count for context
    """
    if not DEBUG_PERF:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if row_count is not None:
            logger.debug("PERF: %s (%d rows) took %.2fms", operation, row_count, elapsed_ms)
        else:
            logger.debug("PERF: %s took %.2fms", operation, elapsed_ms)


def log_perf(func: Callable) -> Callable:
    """Decorator to log how long a function takes."""

    @wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        if not DEBUG_PERF:
            return func(*args, **kwargs)

        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.debug("PERF: %s took %.2fms", func.__qualname__, elapsed_ms)

    return wrapper
