"""
Storage error taxonomy and classification.

Every failure coming out of the ORM path or the raw SQL path is reduced to one
of three kinds before the gateway decides what to do with it:

- CONNECTION_FAILURE: the backend could not be reached or dropped the
  connection. Triggers the fallback chain.
- CONFLICT: a uniqueness constraint was violated. Resolved per operation
  (re-fetch for movies and watchlist entries, DuplicateUsername for users).
- OTHER: anything else. Never retried.
"""
from enum import Enum
from typing import Optional
import re

from sqlalchemy.exc import DBAPIError, DisconnectionError, IntegrityError, StatementError


class ErrorKind(str, Enum):
    CONNECTION_FAILURE = "connection_failure"
    CONFLICT = "conflict"
    OTHER = "other"


_CONNECTION_PATTERNS = re.compile(
    r"connection refused|econnrefused|connection reset|econnreset|"
    r"timed out|timeout|etimedout|"
    r"terminat|connection (is |was )?closed|server closed the connection|"
    r"could not connect|cannot connect|connection to server|connection lost|"
    r"socket|network|broken pipe|host is unreachable|no route to host|"
    r"name or service not known|getaddrinfo|too many clients",
    re.IGNORECASE,
)

_CONFLICT_PATTERNS = re.compile(
    r"unique constraint|duplicate key|uniqueviolation|unique_violation",
    re.IGNORECASE,
)


class StorageError(Exception):
    """Base class for every error raised by the storage layer"""
    kind = ErrorKind.OTHER


class NotFound(StorageError):
    """A read or update targeted a row that does not exist"""

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class DuplicateUsername(StorageError):
    kind = ErrorKind.CONFLICT

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username {username!r} already exists")


class DuplicateTmdbId(StorageError):
    kind = ErrorKind.CONFLICT

    def __init__(self, tmdb_id: int):
        self.tmdb_id = tmdb_id
        super().__init__(f"Movie with tmdb_id {tmdb_id} already exists")


class ConnectionFailure(StorageError):
    """Every relational tier failed for connection-class reasons"""
    kind = ErrorKind.CONNECTION_FAILURE

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation}: database unavailable ({cause})")


class QueryFailed(StorageError):
    """A single statement failed; `kind` is the classification of its cause"""

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        self.kind = classify_error(cause)
        super().__init__(f"{operation} failed: {cause}")


def _causes(exc: BaseException):
    """Walk the exception and everything it wraps (DBAPI .orig, __cause__)."""
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = getattr(exc, "orig", None) or exc.__cause__ or exc.__context__


def _error_text(err: BaseException) -> str:
    """Driver message only; StatementError.__str__ also renders the SQL and bound parameters."""
    if isinstance(err, StatementError):
        return str(err.args[0]) if err.args else ""
    return str(err)


def classify_error(exc: BaseException) -> ErrorKind:
    """Reduce any storage-path exception to an ErrorKind."""
    if isinstance(exc, StorageError):
        return exc.kind

    for err in _causes(exc):
        if isinstance(err, DBAPIError) and err.connection_invalidated:
            return ErrorKind.CONNECTION_FAILURE
        if isinstance(err, (DisconnectionError, ConnectionError, TimeoutError)):
            return ErrorKind.CONNECTION_FAILURE

    message = " ".join(_error_text(err) for err in _causes(exc))
    if _CONFLICT_PATTERNS.search(message):
        return ErrorKind.CONFLICT
    # Foreign key / not-null violations are data errors, never connection errors
    if isinstance(exc, IntegrityError):
        return ErrorKind.OTHER
    if _CONNECTION_PATTERNS.search(message):
        return ErrorKind.CONNECTION_FAILURE
    return ErrorKind.OTHER


def is_connection_error(exc: BaseException) -> bool:
    return classify_error(exc) is ErrorKind.CONNECTION_FAILURE


def is_conflict(exc: BaseException) -> bool:
    return classify_error(exc) is ErrorKind.CONFLICT
