# chess_annotator/utils/retry.py
"""
Provides a generic, asynchronous retry decorator for handling transient errors.

Engine requests can fail for temporary reasons (a slow search hitting its
timeout, a restarting process). This decorator retries such an operation with
an exponential backoff delay before giving up.
"""
import asyncio
import functools
import random
from typing import Any, Callable, Coroutine, Tuple, Type

import structlog

from chess_annotator.exceptions import EngineAnalysisError
from chess_annotator.utils import metrics

logger = structlog.get_logger(__name__)

# Exception types considered "transient" and worth retrying.
DEFAULT_TRANSIENT_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    EngineAnalysisError,
)


def retry_with_backoff(
    attempts: int = 3,
    initial_backoff_s: float = 0.5,
    max_backoff_s: float = 5.0,
    jitter_factor: float = 0.2,
    exceptions_to_catch: Tuple[Type[Exception], ...] = DEFAULT_TRANSIENT_EXCEPTIONS,
    operation: str = "unknown",
) -> Callable[[Callable[..., Coroutine]], Callable[..., Coroutine]]:
    """
    An async decorator to retry a function with exponential backoff and jitter.

    Args:
        attempts: The maximum number of tries, including the first one.
        initial_backoff_s: The delay in seconds before the first retry.
        max_backoff_s: The cap on any single delay.
        jitter_factor: Randomizes each delay by up to this fraction of it.
        exceptions_to_catch: The exception classes that trigger a retry.
        operation: A label for Prometheus metrics naming the retried operation.

    Returns:
        A decorated asynchronous function.
    """
    def decorator(func: Callable[..., Coroutine]) -> Callable[..., Coroutine]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            current_delay = initial_backoff_s
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions_to_catch as e:
                    metrics.ENGINE_TRANSIENT_ERRORS_TOTAL.labels(operation=operation).inc()

                    if attempt == attempts:
                        logger.error(
                            "Function call failed after max attempts.",
                            function=func.__name__,
                            final_attempt=attempt,
                            total_attempts=attempts,
                            error=str(e),
                        )
                        raise

                    jitter = random.uniform(-current_delay * jitter_factor, current_delay * jitter_factor)
                    wait_time = max(0.0, min(max_backoff_s, current_delay + jitter))

                    logger.warning(
                        "Caught transient error, retrying function.",
                        function=func.__name__,
                        attempt=attempt,
                        total_attempts=attempts,
                        wait_seconds=round(wait_time, 2),
                        error=str(e),
                    )

                    await asyncio.sleep(wait_time)
                    current_delay *= 2
        return wrapper
    return decorator
