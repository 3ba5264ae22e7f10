# Hey future me - this is THE FIX for "database is locked" errors!
#
# SQLite has ONE writer at a time. The scan worker writes one row per file while the
# serving layer may be bumping play counts or an admin edits a song. Lock errors are
# temporary, so wait and retry instead of losing the file for this pass.
#
# USAGE:
#   @with_db_retry(max_attempts=3)
#   async def _insert(self, record: ScanRecord) -> None:
#       async with self._db.session_scope() as session:
#           ...
#
# Wrap the WHOLE session scope, not a single execute() inside it - a failed statement
# leaves the session in a state where only rollback is allowed.
"""Database retry utilities for handling SQLite lock errors."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def is_lock_error(exception: BaseException) -> bool:
    """Check if an exception is a retryable database lock error."""
    if not isinstance(exception, OperationalError):
        return False

    error_msg = str(exception).lower()
    return "locked" in error_msg or "busy" in error_msg


def with_db_retry(
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    max_delay: float = 5.0,
    backoff_factor: float = 2.0,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator for retrying database operations on lock errors.

    The backoff is exponential: 0.5s → 1s → 2s (capped at max_delay).
    Only "locked"/"busy" OperationalErrors are retried, everything else
    is raised immediately.

    Args:
        max_attempts: Maximum attempts including the first one
        initial_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
        backoff_factor: Multiply delay by this each retry

    Returns:
        Decorated coroutine function with automatic retry logic.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            delay = initial_delay
            start_time = time.monotonic()

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except OperationalError as e:
                    if not is_lock_error(e) or attempt == max_attempts:
                        if is_lock_error(e):
                            elapsed = (time.monotonic() - start_time) * 1000
                            logger.error(
                                "Database locked after %d attempts (%.0fms total), giving up: %s",
                                max_attempts,
                                elapsed,
                                func.__qualname__,
                            )
                        raise

                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.1fs: %s",
                        attempt,
                        max_attempts,
                        delay,
                        func.__qualname__,
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)

            raise RuntimeError("Unexpected state in retry decorator")

        return wrapper

    return decorator
