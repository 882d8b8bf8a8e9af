"""
Tiered storage: ORM path, raw SQL fallback, health monitor and emergency store
"""
from watchlist_core.storage.emergency import EmergencyStore
from watchlist_core.storage.errors import (
    ConnectionFailure,
    DuplicateTmdbId,
    DuplicateUsername,
    ErrorKind,
    NotFound,
    QueryFailed,
    StorageError,
    classify_error,
)
from watchlist_core.storage.gateway import StorageGateway
from watchlist_core.storage.health import ConnectionHealthMonitor
from watchlist_core.storage.raw_sql import RawSqlExecutor

__all__ = [
    "StorageGateway",
    "RawSqlExecutor",
    "ConnectionHealthMonitor",
    "EmergencyStore",
    "StorageError",
    "NotFound",
    "DuplicateUsername",
    "DuplicateTmdbId",
    "ConnectionFailure",
    "QueryFailed",
    "ErrorKind",
    "classify_error",
]
