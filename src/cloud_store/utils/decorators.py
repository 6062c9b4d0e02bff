"""Decorator utilities for cross-cutting concerns."""
import time
import logging
import functools
from typing import Any, Callable, TypeVar, cast

from cloud_store.errors import CloudStoreError

# Setup logging
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def _log_failure(name: str, duration: float, error: Exception) -> None:
    # Client mistakes (missing resources, bad identifiers) are routine
    if isinstance(error, CloudStoreError) and error.status_code < 500:
        logger.info(f"{name} failed after {duration:.2f}s: {str(error)}")
    else:
        logger.error(f"{name} failed after {duration:.2f}s: {str(error)}")


def async_log_execution_time(func: F) -> F:
    """Decorator to log async function execution time.

    Args:
        func: The async function to decorate

    Returns:
        Decorated async function that logs execution time
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = await func(*args, **kwargs)
            duration = time.time() - start_time
            logger.debug(f"{func.__qualname__} completed in {duration:.2f}s")
            return result
        except Exception as e:
            _log_failure(func.__qualname__, time.time() - start_time, e)
            raise
    return cast(F, wrapper)


def async_gen_log_execution_time(func: F) -> F:
    """Decorator to log how long it takes to drain an async generator.

    Args:
        func: The async generator function to decorate

    Returns:
        Decorated async generator function
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.time()
        count = 0
        try:
            async for item in func(*args, **kwargs):
                count += 1
                yield item
            duration = time.time() - start_time
            logger.debug(f"{func.__qualname__} yielded {count} items in {duration:.2f}s")
        except Exception as e:
            _log_failure(func.__qualname__, time.time() - start_time, e)
            raise
    return cast(F, wrapper)
