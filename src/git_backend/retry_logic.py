"""Retry logic with exponential backoff for lost commit races.

A commit loses the race when another writer advanced the branch between
reading its tip and updating the ref. Re-running the whole operation
rebuilds the commit on the new tip. Backoff is 1s, 2s, 4s; errors that are
not retryable are raised immediately.
"""

import logging
import time
from functools import wraps
from typing import Callable, TypeVar

from src.git_backend.errors import BackingStoreError

logger = logging.getLogger(__name__)

T = TypeVar('T')

MAX_RETRIES = 3


def retry_on_concurrent_commit(func: Callable[..., T], *args, **kwargs) -> T:
    """Retry function on a retryable backing store error.

    Args:
        func: The operation to execute, typically one that commits
        *args: Positional arguments to pass to the function
        **kwargs: Keyword arguments to pass to the function

    Returns:
        The return value of the function

    Raises:
        BackingStoreError: If the error persists after 3 retries
        Other exceptions: Passed through immediately without retry

    Example:
        >>> commit_id = retry_on_concurrent_commit(store.save_page_with_media, "Home", None, ...)
    """
    for retry_num in range(MAX_RETRIES + 1):
        try:
            return func(*args, **kwargs)
        except BackingStoreError as e:
            if not e.retryable:
                raise

            if retry_num >= MAX_RETRIES:
                logger.error(
                    f"Commit still failing after {MAX_RETRIES} retries, giving up"
                )
                raise

            wait_time = 2 ** retry_num
            logger.info(
                f"{e.message}, retrying in {wait_time}s "
                f"(retry {retry_num + 1}/{MAX_RETRIES})"
            )
            time.sleep(wait_time)

    raise AssertionError("unreachable")


def as_decorator(func: Callable[..., T]) -> Callable[..., T]:
    """Decorator version of retry_on_concurrent_commit.

    Example:
        >>> @as_decorator
        ... def publish(store, page):
        ...     return store.save_page_with_media(...)
    """
    @wraps(func)
    def wrapper(*args, **kwargs) -> T:
        return retry_on_concurrent_commit(func, *args, **kwargs)

    return wrapper
