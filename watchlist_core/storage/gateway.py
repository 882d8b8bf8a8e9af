"""
Tiered Storage Gateway
======================
Single entry point for reading and writing users, movies, platforms and
watchlist entries.

Every operation tries the ORM-mapped path first and falls back to raw SQL
when the ORM path fails for connection-class reasons. User creation can fall
back one step further, to the emergency in-memory store, when running in
production with the emergency tier enabled and the database confirmed down.

Policy summary:
- Reads never raise: total failure degrades to None / [] / False.
- Writes raise only after every tier is exhausted, as a StorageError.
- Uniqueness conflicts are resolved per entity: movies and watchlist entries
  return the existing row, users raise DuplicateUsername.
"""
from enum import Enum
from typing import Any, Dict, List, NoReturn, Optional, Sequence, Type
import json
import logging

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from watchlist_core import config
from watchlist_core.database import create_session_factory
from watchlist_core.models import Movie, Platform, User, WatchlistEntry
from watchlist_core.schemas.movie import InsertMovie, MovieRecord
from watchlist_core.schemas.platform import InsertPlatform, PlatformRecord, PlatformUpdate
from watchlist_core.schemas.user import InsertUser, UserRecord, UserUpdate
from watchlist_core.schemas.watchlist import (
    InsertWatchlistEntry,
    StorageStats,
    WatchlistEntryRecord,
    WatchlistEntryUpdate,
    WatchlistEntryWithMovie,
)
from watchlist_core.storage.emergency import EmergencyStore, is_emergency_id
from watchlist_core.storage.errors import (
    ConnectionFailure,
    DuplicateTmdbId,
    DuplicateUsername,
    ErrorKind,
    QueryFailed,
    StorageError,
    classify_error,
)
from watchlist_core.storage.fallback import degrade, with_fallback
from watchlist_core.storage.health import ConnectionHealthMonitor
from watchlist_core.storage.raw_sql import RawSqlExecutor

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, username, password, display_name, created_at, environment"
MOVIE_COLUMNS = (
    "id, tmdb_id, title, overview, poster_path, backdrop_path, release_date, vote_average, "
    "genres, media_type, runtime, number_of_seasons, number_of_episodes"
)
PLATFORM_COLUMNS = "id, user_id, name, logo_url, is_default, created_at"
ENTRY_COLUMNS = "id, user_id, movie_id, platform_id, status, watched_date, notes, created_at"


def _first(record_cls: Type[BaseModel], rows: List[Dict[str, Any]]):
    return record_cls.model_validate(rows[0]) if rows else None


def _sql_value(value):
    """Adapt python values for raw statements (enums to their value, lists to JSON)"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return json.dumps(value)
    return value


def _raise_for_write(operation: str, e: Exception) -> NoReturn:
    """Re-raise a write failure as the StorageError the caller must act on."""
    kind = classify_error(e)
    if kind is ErrorKind.CONNECTION_FAILURE and not isinstance(e, ConnectionFailure):
        raise ConnectionFailure(operation, getattr(e, "cause", e)) from e
    if isinstance(e, StorageError):
        raise e
    raise QueryFailed(operation, e) from e


class StorageGateway:
    """
    Tiered storage access. One instance per process, shared by request
    handlers; all fallback state (health counters, emergency data) lives on
    the instance.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        executor: RawSqlExecutor,
        health: Optional[ConnectionHealthMonitor] = None,
        emergency: Optional[EmergencyStore] = None,
        environment: Optional[str] = None,
        emergency_enabled: Optional[bool] = None,
    ):
        self._session_factory = session_factory
        self._sql = executor
        self.health = health or ConnectionHealthMonitor(executor)
        self.emergency = emergency or EmergencyStore()
        self.environment = environment if environment is not None else config.ENVIRONMENT
        self.emergency_enabled = (
            emergency_enabled if emergency_enabled is not None else config.EMERGENCY_STORE_ENABLED
        )

    @classmethod
    def from_engine(cls, engine: AsyncEngine, **kwargs) -> "StorageGateway":
        return cls(create_session_factory(engine), RawSqlExecutor(engine), **kwargs)

    @property
    def emergency_permitted(self) -> bool:
        """Emergency tier is opt-in and production-only"""
        return self.emergency_enabled and self.environment == "production"

    # ==================== SHARED HELPERS ====================

    async def _orm_get(self, model, row_id: int):
        async with self._session_factory() as session:
            return await session.get(model, row_id)

    async def _orm_first(self, statement):
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return result.scalars().first()

    async def _orm_all(self, statement) -> list:
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def _orm_insert(self, row):
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row

    async def _read(self, operation: str, default, orm, raw):
        return await degrade(operation, default, lambda: with_fallback(operation, orm, raw))

    async def _insert(
        self,
        operation: str,
        row,
        table: str,
        columns: str,
        record_cls: Type[BaseModel],
        values: Dict[str, Any],
    ):
        """Plain insert (no conflict policy): ORM, then raw SQL on connection errors"""

        async def orm():
            return record_cls.model_validate(await self._orm_insert(row))

        async def raw():
            names = ", ".join(values)
            placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
            rows = await self._sql.execute(
                f"INSERT INTO {table} ({names}) VALUES ({placeholders}) RETURNING {columns}",
                [_sql_value(v) for v in values.values()],
                operation=operation,
            )
            return _first(record_cls, rows)

        try:
            return await with_fallback(operation, orm, raw)
        except Exception as e:
            _raise_for_write(operation, e)

    async def _update(
        self,
        operation: str,
        model,
        table: str,
        columns: str,
        record_cls: Type[BaseModel],
        row_id: int,
        changes: Dict[str, Any],
    ):
        """Partial update by id. Returns None when the row does not exist."""

        async def orm():
            async with self._session_factory() as session:
                row = await session.get(model, row_id)
                if row is None:
                    return None
                for field, value in changes.items():
                    setattr(row, field, value)
                await session.commit()
                await session.refresh(row)
                return record_cls.model_validate(row)

        async def raw():
            assignments = ", ".join(f"{field} = ${i}" for i, field in enumerate(changes, start=1))
            rows = await self._sql.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ${len(changes) + 1} RETURNING {columns}",
                [_sql_value(v) for v in changes.values()] + [row_id],
                operation=operation,
            )
            return _first(record_cls, rows)

        try:
            return await with_fallback(operation, orm, raw)
        except Exception as e:
            _raise_for_write(operation, e)

    async def _delete(self, operation: str, model, table: str, row_id: int) -> bool:
        """Delete by id; any failure counts as "did not delete"."""

        async def orm():
            async with self._session_factory() as session:
                row = await session.get(model, row_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
                return True

        async def raw():
            rows = await self._sql.execute(
                f"DELETE FROM {table} WHERE id = $1 RETURNING id", [row_id], operation=operation
            )
            return bool(rows)

        return await self._read(operation, False, orm, raw)

    # ==================== USERS ====================

    async def get_user(self, user_id: int) -> Optional[UserRecord]:
        if is_emergency_id(user_id):
            return self.emergency.get_user(user_id) if self.emergency_permitted else None

        async def orm():
            row = await self._orm_get(User, user_id)
            return UserRecord.model_validate(row) if row else None

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1", [user_id], operation="get user"
            )
            return _first(UserRecord, rows)

        return await self._read("get user", None, orm, raw)

    async def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        """Case-insensitive lookup"""
        async def orm():
            row = await self._orm_first(
                select(User).where(func.lower(User.username) == username.lower()).limit(1)
            )
            return UserRecord.model_validate(row) if row else None

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE lower(username) = lower($1) LIMIT 1",
                [username],
                operation="get user by username",
            )
            return _first(UserRecord, rows)

        user = await self._read("get user by username", None, orm, raw)
        if user is None and self.emergency_permitted:
            user = self.emergency.get_user_by_username(username)
        return user

    async def get_all_users(self) -> List[UserRecord]:
        async def orm():
            rows = await self._orm_all(select(User).order_by(User.id))
            return [UserRecord.model_validate(row) for row in rows]

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {USER_COLUMNS} FROM users ORDER BY id", operation="get all users"
            )
            return [UserRecord.model_validate(row) for row in rows]

        users = await self._read("get all users", [], orm, raw)
        if self.emergency_permitted and self.emergency.has_emergency_data:
            known = {user.username.lower() for user in users}
            users += [u for u in self.emergency.get_all_users() if u.username.lower() not in known]
        return users

    async def create_user(self, data: InsertUser) -> UserRecord:
        """
        Register a user. Not idempotent: an existing username (any case)
        raises DuplicateUsername.

        Raises:
            DuplicateUsername: the username is taken
            ConnectionFailure: no tier could store the user
            QueryFailed: any other database error
        """
        operation = "create user"
        try:
            row = await self._orm_insert(User(**data.model_dump()))
            return UserRecord.model_validate(row)
        except Exception as e:
            kind = classify_error(e)
            if kind is ErrorKind.CONFLICT:
                raise DuplicateUsername(data.username) from e
            if kind is not ErrorKind.CONNECTION_FAILURE:
                raise QueryFailed(operation, e) from e
            logger.warning(f"{operation}: ORM insert lost the connection: {str(e)}")

        healthy = await self.health.check_connection()
        if not healthy and self.emergency_permitted:
            logger.warning(
                f"[EMERGENCY] Database unreachable, registering {data.username!r} in the emergency store"
            )
            return self.emergency.create_user(data)

        try:
            rows = await self._sql.execute(
                "INSERT INTO users (username, password, display_name, environment) "
                f"VALUES ($1, $2, $3, $4) RETURNING {USER_COLUMNS}",
                [data.username, data.password, data.display_name, data.environment],
                operation=operation,
            )
        except QueryFailed as e:
            if e.kind is ErrorKind.CONFLICT:
                raise DuplicateUsername(data.username) from e
            _raise_for_write(operation, e)
        return UserRecord.model_validate(rows[0])

    async def update_user(self, user_id: int, updates: UserUpdate) -> Optional[UserRecord]:
        """Emergency users (negative ids) are only ever updated in memory."""
        if is_emergency_id(user_id):
            return self.emergency.update_user(user_id, updates) if self.emergency_permitted else None

        changes = updates.model_dump(exclude_unset=True)
        if not changes:
            return await self.get_user(user_id)
        return await self._update("update user", User, "users", USER_COLUMNS, UserRecord, user_id, changes)

    # ==================== MOVIES ====================

    async def get_movie(self, movie_id: int) -> Optional[MovieRecord]:
        async def orm():
            row = await self._orm_get(Movie, movie_id)
            return MovieRecord.model_validate(row) if row else None

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {MOVIE_COLUMNS} FROM movies WHERE id = $1", [movie_id], operation="get movie"
            )
            return _first(MovieRecord, rows)

        return await self._read("get movie", None, orm, raw)

    async def get_movie_by_tmdb_id(self, tmdb_id: int) -> Optional[MovieRecord]:
        async def orm():
            row = await self._orm_first(select(Movie).where(Movie.tmdb_id == tmdb_id).limit(1))
            return MovieRecord.model_validate(row) if row else None

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {MOVIE_COLUMNS} FROM movies WHERE tmdb_id = $1 LIMIT 1",
                [tmdb_id],
                operation="get movie by tmdb id",
            )
            return _first(MovieRecord, rows)

        return await self._read("get movie by tmdb id", None, orm, raw)

    async def create_movie(self, data: InsertMovie) -> MovieRecord:
        """
        Cache a catalog entry. Idempotent on tmdb_id: a second create for the
        same title returns the row stored by the first.
        """
        operation = "create movie"
        try:
            row = await self._orm_insert(Movie(**data.model_dump()))
            return MovieRecord.model_validate(row)
        except Exception as e:
            kind = classify_error(e)
            if kind is ErrorKind.CONFLICT:
                existing = await self.get_movie_by_tmdb_id(data.tmdb_id)
                if existing is not None:
                    logger.info(f"Movie tmdb_id={data.tmdb_id} already cached as id={existing.id}")
                    return existing
                raise DuplicateTmdbId(data.tmdb_id) from e
            if kind is not ErrorKind.CONNECTION_FAILURE:
                raise QueryFailed(operation, e) from e
            logger.warning(f"{operation}: ORM insert lost the connection, retrying with raw SQL: {str(e)}")

        values = data.model_dump()
        try:
            rows = await self._sql.execute(
                f"INSERT INTO movies ({', '.join(values)}) "
                f"VALUES ({', '.join(f'${i}' for i in range(1, len(values) + 1))}) "
                f"ON CONFLICT (tmdb_id) DO NOTHING RETURNING {MOVIE_COLUMNS}",
                [_sql_value(v) for v in values.values()],
                operation=operation,
            )
        except QueryFailed as e:
            # A concurrent caller may have stored it before we failed
            existing = await self.get_movie_by_tmdb_id(data.tmdb_id)
            if existing is not None:
                return existing
            _raise_for_write(operation, e)

        if rows:
            return MovieRecord.model_validate(rows[0])
        existing = await self.get_movie_by_tmdb_id(data.tmdb_id)
        if existing is None:
            raise DuplicateTmdbId(data.tmdb_id)
        return existing

    # ==================== PLATFORMS ====================

    async def get_platforms(self, user_id: int) -> List[PlatformRecord]:
        async def orm():
            rows = await self._orm_all(
                select(Platform).where(Platform.user_id == user_id).order_by(Platform.id)
            )
            return [PlatformRecord.model_validate(row) for row in rows]

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {PLATFORM_COLUMNS} FROM platforms WHERE user_id = $1 ORDER BY id",
                [user_id],
                operation="get platforms",
            )
            return [PlatformRecord.model_validate(row) for row in rows]

        return await self._read("get platforms", [], orm, raw)

    async def get_platform(self, platform_id: int) -> Optional[PlatformRecord]:
        async def orm():
            row = await self._orm_get(Platform, platform_id)
            return PlatformRecord.model_validate(row) if row else None

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {PLATFORM_COLUMNS} FROM platforms WHERE id = $1",
                [platform_id],
                operation="get platform",
            )
            return _first(PlatformRecord, rows)

        return await self._read("get platform", None, orm, raw)

    async def create_platform(self, data: InsertPlatform) -> PlatformRecord:
        values = data.model_dump()
        return await self._insert(
            "create platform", Platform(**values), "platforms", PLATFORM_COLUMNS, PlatformRecord, values
        )

    async def update_platform(self, platform_id: int, updates: PlatformUpdate) -> Optional[PlatformRecord]:
        changes = updates.model_dump(exclude_unset=True)
        if not changes:
            return await self.get_platform(platform_id)
        return await self._update(
            "update platform", Platform, "platforms", PLATFORM_COLUMNS, PlatformRecord, platform_id, changes
        )

    async def delete_platform(self, platform_id: int) -> bool:
        return await self._delete("delete platform", Platform, "platforms", platform_id)

    # ==================== WATCHLIST ENTRIES ====================

    async def has_watchlist_entry(self, user_id: int, movie_id: int) -> bool:
        """Existence check; False when the backend cannot answer."""
        async def orm():
            entry_id = await self._orm_first(
                select(WatchlistEntry.id)
                .where(WatchlistEntry.user_id == user_id, WatchlistEntry.movie_id == movie_id)
                .limit(1)
            )
            return entry_id is not None

        async def raw():
            rows = await self._sql.execute(
                "SELECT id FROM watchlist_entries WHERE user_id = $1 AND movie_id = $2 LIMIT 1",
                [user_id, movie_id],
                operation="has watchlist entry",
            )
            return bool(rows)

        return await self._read("has watchlist entry", False, orm, raw)

    async def _find_watchlist_entry(self, user_id: int, movie_id: int) -> Optional[WatchlistEntryRecord]:
        async def orm():
            row = await self._orm_first(
                select(WatchlistEntry)
                .where(WatchlistEntry.user_id == user_id, WatchlistEntry.movie_id == movie_id)
                .order_by(WatchlistEntry.id)
                .limit(1)
            )
            return WatchlistEntryRecord.model_validate(row) if row else None

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {ENTRY_COLUMNS} FROM watchlist_entries "
                "WHERE user_id = $1 AND movie_id = $2 ORDER BY id LIMIT 1",
                [user_id, movie_id],
                operation="find watchlist entry",
            )
            return _first(WatchlistEntryRecord, rows)

        return await self._read("find watchlist entry", None, orm, raw)

    async def create_watchlist_entry(self, data: InsertWatchlistEntry) -> WatchlistEntryRecord:
        """
        Idempotent create: if the user already has this movie on their list
        the existing entry is returned unchanged.
        """
        operation = "create watchlist entry"
        if await self.has_watchlist_entry(data.user_id, data.movie_id):
            existing = await self._find_watchlist_entry(data.user_id, data.movie_id)
            if existing is not None:
                logger.info(
                    f"Watchlist entry for user {data.user_id} / movie {data.movie_id} "
                    f"already exists (id={existing.id})"
                )
                return existing

        try:
            row = await self._orm_insert(WatchlistEntry(**data.model_dump()))
            return WatchlistEntryRecord.model_validate(row)
        except Exception as e:
            kind = classify_error(e)
            if kind is ErrorKind.CONFLICT:
                # Lost a race with a concurrent create for the same pair
                existing = await self._find_watchlist_entry(data.user_id, data.movie_id)
                if existing is not None:
                    return existing
                raise QueryFailed(operation, e) from e
            if kind is not ErrorKind.CONNECTION_FAILURE:
                raise QueryFailed(operation, e) from e
            logger.warning(f"{operation}: ORM insert lost the connection, retrying with raw SQL: {str(e)}")

        values = data.model_dump()
        try:
            rows = await self._sql.execute(
                f"INSERT INTO watchlist_entries ({', '.join(values)}) "
                f"VALUES ({', '.join(f'${i}' for i in range(1, len(values) + 1))}) "
                f"ON CONFLICT (user_id, movie_id) DO NOTHING RETURNING {ENTRY_COLUMNS}",
                [_sql_value(v) for v in values.values()],
                operation=operation,
            )
        except QueryFailed as e:
            existing = await self._find_watchlist_entry(data.user_id, data.movie_id)
            if existing is not None:
                return existing
            _raise_for_write(operation, e)

        if rows:
            return WatchlistEntryRecord.model_validate(rows[0])
        existing = await self._find_watchlist_entry(data.user_id, data.movie_id)
        if existing is None:
            raise QueryFailed(operation, RuntimeError("insert skipped but no existing entry found"))
        return existing

    async def _attach_movies(self, entries: Sequence[WatchlistEntryRecord]) -> List[WatchlistEntryWithMovie]:
        """Pair entries with their movies, dropping entries whose movie cannot be resolved."""
        movies: Dict[int, Optional[MovieRecord]] = {}
        result = []
        for entry in entries:
            if entry.movie_id not in movies:
                movies[entry.movie_id] = await self.get_movie(entry.movie_id)
            movie = movies[entry.movie_id]
            if movie is None:
                logger.warning(f"Dropping watchlist entry {entry.id}: movie {entry.movie_id} unavailable")
                continue
            result.append(WatchlistEntryWithMovie(**entry.model_dump(), movie=movie))
        return result

    async def get_watchlist_entries(self, user_id: int) -> List[WatchlistEntryWithMovie]:
        """A user's entries with their movies, newest first"""
        async def orm():
            rows = await self._orm_all(
                select(WatchlistEntry)
                .where(WatchlistEntry.user_id == user_id)
                .order_by(WatchlistEntry.created_at.desc(), WatchlistEntry.id.desc())
            )
            return [WatchlistEntryRecord.model_validate(row) for row in rows]

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {ENTRY_COLUMNS} FROM watchlist_entries WHERE user_id = $1 "
                "ORDER BY created_at DESC, id DESC",
                [user_id],
                operation="get watchlist entries",
            )
            return [WatchlistEntryRecord.model_validate(row) for row in rows]

        entries = await self._read("get watchlist entries", [], orm, raw)
        return await self._attach_movies(entries)

    async def get_watchlist_entry(self, entry_id: int) -> Optional[WatchlistEntryWithMovie]:
        async def orm():
            row = await self._orm_get(WatchlistEntry, entry_id)
            return WatchlistEntryRecord.model_validate(row) if row else None

        async def raw():
            rows = await self._sql.execute(
                f"SELECT {ENTRY_COLUMNS} FROM watchlist_entries WHERE id = $1",
                [entry_id],
                operation="get watchlist entry",
            )
            return _first(WatchlistEntryRecord, rows)

        entry = await self._read("get watchlist entry", None, orm, raw)
        if entry is None:
            return None
        attached = await self._attach_movies([entry])
        return attached[0] if attached else None

    async def update_watchlist_entry(
        self, entry_id: int, updates: WatchlistEntryUpdate
    ) -> Optional[WatchlistEntryRecord]:
        changes = updates.model_dump(exclude_unset=True)
        if not changes:
            entry = await self.get_watchlist_entry(entry_id)
            return WatchlistEntryRecord(**entry.model_dump(exclude={"movie"})) if entry else None
        return await self._update(
            "update watchlist entry",
            WatchlistEntry,
            "watchlist_entries",
            ENTRY_COLUMNS,
            WatchlistEntryRecord,
            entry_id,
            changes,
        )

    async def delete_watchlist_entry(self, entry_id: int) -> bool:
        return await self._delete("delete watchlist entry", WatchlistEntry, "watchlist_entries", entry_id)

    # ==================== MAINTENANCE ====================

    async def get_stats(self) -> StorageStats:
        """Row counts per table; each count degrades to 0 on its own."""
        counts = {}
        for table in ("users", "movies", "platforms", "watchlist_entries"):
            async def count(table=table):
                rows = await self._sql.execute(
                    f"SELECT COUNT(*) AS count FROM {table}", operation=f"count {table}"
                )
                return int(rows[0]["count"]) if rows else 0

            counts[table] = await degrade(f"count {table}", 0, count)

        if self.emergency_permitted:
            # The seeded guest user is not emergency data
            counts["emergency_users"] = self.emergency.counts()["users"] - 1
        return StorageStats(**counts)
