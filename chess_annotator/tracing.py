# chess_annotator/tracing.py

"""
tracing
~~~~~~~

Components for traceability and context-aware logging of analysis sessions.
"""

import functools
import time
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)


def trace_step(func: Callable) -> Callable:
    """A decorator that logs entry, exit and duration of an async session step."""
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        step_name = f"{args[0].__class__.__name__}.{func.__name__}"
        logger.debug("Entering analysis step.", step=step_name)
        start = time.perf_counter()
        result = await func(*args, **kwargs)
        logger.debug(
            "Exiting analysis step.", step=step_name,
            duration_ms=round((time.perf_counter() - start) * 1000, 1)
        )
        return result
    return wrapper
