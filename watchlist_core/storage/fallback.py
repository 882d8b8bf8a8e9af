"""
Fallback chain combinators shared by every gateway operation.
"""
from typing import Awaitable, Callable, TypeVar
import logging

from watchlist_core.storage.errors import ErrorKind, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_fallback(
    operation: str,
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], Awaitable[T]],
) -> T:
    """
    Run the ORM-mapped `primary`; on a connection-class failure run the raw
    SQL `fallback` instead. Any other failure propagates untouched.
    """
    try:
        return await primary()
    except Exception as e:
        if classify_error(e) is not ErrorKind.CONNECTION_FAILURE:
            raise
        logger.warning(f"{operation}: ORM path lost the connection, retrying with raw SQL: {str(e)}")
    return await fallback()


async def degrade(
    operation: str,
    default: T,
    call: Callable[[], Awaitable[T]],
) -> T:
    """
    Run a read and turn any failure into `default`.
    """
    try:
        return await call()
    except Exception as e:
        logger.error(f"{operation} failed on every tier, returning {default!r}: {str(e)}")
        return default
