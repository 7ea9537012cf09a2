"""
Retry utility with exponential backoff for destination service calls.

This is transport-level retry within a single remote call. Retrying a whole
job is handled by re-running it; idempotency keys skip completed steps.
"""
import time
import logging
from typing import Callable, TypeVar, Optional, Tuple
from functools import wraps

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple = (Exception,),
    should_retry: Optional[Callable[[Exception], bool]] = None
) -> Callable:
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts. Total attempts are
                     ``max_retries + 1``. May also be overridden per instance
                     through a ``max_retries`` attribute on the bound object.
        initial_delay: Delay in seconds before the first retry
        max_delay: Upper bound on the delay between retries
        exponential_base: Multiplier applied to the delay after each retry
        exceptions: Exception types that are candidates for a retry
        should_retry: Optional predicate narrowing ``exceptions``; an exception
                      for which it returns False is re-raised immediately

    Returns:
        Decorated function that retries on matching exceptions.

    Raises:
        The last exception raised if all attempts fail.

    Example:
        >>> @retry_with_backoff(max_retries=3, exceptions=(requests.ConnectionError,))
        ... def create_album(session, url, name):
        ...     return session.post(url, json={'Name': name})
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            retries = max_retries
            if args and isinstance(getattr(args[0], 'max_retries', None), int):
                retries = args[0].max_retries

            delay = initial_delay
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if should_retry is not None and not should_retry(e):
                        raise
                    if attempt >= retries:
                        logger.error(f"{func.__name__} failed after {attempt + 1} attempts: {e}")
                        raise

                    attempt += 1
                    logger.warning(
                        f"{func.__name__} failed (attempt {attempt}/{retries + 1}): {e}. "
                        f"Retrying in {delay:.1f} seconds..."
                    )
                    time.sleep(delay)
                    delay = min(delay * exponential_base, max_delay)

        return wrapper
    return decorator
