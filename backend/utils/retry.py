"""
Retry Logic Utilities

Bounded retry for durable writes. A failed transaction is retried once
before the caller is told the write did not happen.
"""

from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception_type,
    before_sleep_log,
    after_log
)
from sqlalchemy.exc import SQLAlchemyError
from backend.config import settings
import logging

logger = logging.getLogger(__name__)


def persistence_retrying(max_attempts: int = None, delay: float = None) -> AsyncRetrying:
    """
    Build an async retry controller for database writes

    Retries on:
    - SQLAlchemy errors (connection loss, constraint races, deadlocks)
    - Connection errors

    Args:
        max_attempts: Total attempts including the first (default: settings.PERSISTENCE_MAX_ATTEMPTS)
        delay: Seconds between attempts (default: settings.PERSISTENCE_RETRY_DELAY)

    Returns:
        Tenacity AsyncRetrying; the last exception is re-raised when exhausted

    Example:
        >>> async for attempt in persistence_retrying():
        ...     with attempt:
        ...         await asyncio.to_thread(store.append_turn, ...)
    """
    max_attempts = max_attempts or settings.PERSISTENCE_MAX_ATTEMPTS
    delay = settings.PERSISTENCE_RETRY_DELAY if delay is None else delay

    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type((
            SQLAlchemyError,
            ConnectionError
        )),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )
