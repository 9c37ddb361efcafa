# extract_builder/core/retry.py
"""Bounded retry with exponential backoff for recoverable store failures."""

import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, DisconnectionError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from extract_builder.core.exceptions import TransientStoreFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Pool exhaustion and dropped connections; everything else propagates untouched
RETRYABLE_ERRORS = (PoolTimeoutError, DisconnectionError)


def is_retryable(error: Exception) -> bool:
    """Pool exhaustion, a refused connection, or a driver error that invalidated the connection."""
    if isinstance(error, RETRYABLE_ERRORS):
        return True
    return isinstance(error, DBAPIError) and bool(error.connection_invalidated)


def with_store_retry(operation: Callable[[], T], attempts: int = 3, base_delay: float = 0.5, label: str = "store operation") -> T:
    """Run ``operation``, retrying pool exhaustion and lost connections up to ``attempts`` times.

    Raises TransientStoreFailure once the attempts are used up.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return operation()
        except RETRYABLE_ERRORS + (DBAPIError,) as e:
            if not is_retryable(e):
                raise
            logger.warning(f"{label} attempt {attempt + 1}/{attempts} failed: {e}")
            if attempt == attempts - 1:
                raise TransientStoreFailure(
                    "The data store is temporarily unavailable, please retry"
                ) from e
            wait_time = base_delay * (2 ** attempt)
            logger.info(f"Waiting {wait_time} seconds before retry...")
            time.sleep(wait_time)
    raise TransientStoreFailure("The data store is temporarily unavailable, please retry")
