"""
Retry with exponential backoff for throttled Exchange admin calls.

Only read-only calls are decorated; permission mutations are attempted once.
"""

import time
import logging
from functools import wraps
from typing import Callable, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def retry_with_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 60.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to retry function with exponential backoff.

    Delays grow as initial_delay * backoff_factor ** (attempt - 1). When the
    raised exception carries a ``retry_after`` attribute (seconds, as sent by
    Exchange in the Retry-After header) the wait is at least that long.
    No wait ever exceeds max_delay.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        initial_delay: Initial delay in seconds (default: 1.0)
        backoff_factor: Multiplier for each retry (default: 2.0)
        max_delay: Upper bound for a single wait in seconds (default: 60.0)
        exceptions: Tuple of exception types that trigger a retry

    Returns:
        Decorated function with retry logic

    Example:
        >>> @retry_with_backoff(max_attempts=4, exceptions=(ThrottledError,))
        ... def list_folders():
        ...     return client.list_folder_statistics("jdoe@contoso.com")
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            delay = initial_delay

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(f"{func.__name__}: all {max_attempts} attempts failed. Last error: {e}")
                        raise

                    wait = min(max(delay, float(getattr(e, "retry_after", 0) or 0)), max_delay)
                    logger.warning(
                        f"{func.__name__}: attempt {attempt}/{max_attempts} failed: {e}. Retrying in {wait:.1f}s..."
                    )
                    time.sleep(wait)
                    delay *= backoff_factor

            raise RuntimeError("Unexpected state: no exception but all attempts failed")

        return wrapper

    return decorator
