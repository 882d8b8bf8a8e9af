"""
Emergency In-Memory Store
=========================
Process-lifetime mirror of the entity tables, used only to keep user
registration and login working while the relational backend is confirmed
down in production.

Nothing here is durable: state disappears on restart and is never written
back to the database. Every access is logged with an [EMERGENCY] prefix so
operators can tell when emergency data is being served.

User ids (and the ids of every mirrored row) are negative, counting down from
-1, so they can never be confused with database ids, which start at 1.

All access happens on the event loop without awaiting, so no locking is
needed. Wrap calls in a threading.Lock if this is ever shared across threads.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from watchlist_core.schemas.user import InsertUser, UserRecord, UserUpdate
from watchlist_core.storage.errors import DuplicateUsername

logger = logging.getLogger(__name__)

GUEST_USERNAME = "guest"

TABLES = ("users", "movies", "platforms", "watchlist_entries")


def is_emergency_id(row_id: int) -> bool:
    return row_id < 0


class EmergencyStore:
    """
    One dict per table, keyed by negative integer ids.

    The gateway only ever serves users from here. The movies, platforms and
    watchlist_entries tables are kept so the store mirrors the relational
    schema and shows up in the stats counts; nothing in the gateway writes
    to them.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[int, Any]] = {name: {} for name in TABLES}
        self._next_ids: Dict[str, int] = {name: -1 for name in TABLES}
        self._seed()

    def _seed(self) -> None:
        guest = UserRecord(
            id=self._allocate_id("users"),
            username=GUEST_USERNAME,
            password="",  # Guest can never authenticate with a password
            display_name="Guest",
            created_at=datetime.now(timezone.utc),
            environment="emergency",
        )
        self._tables["users"][guest.id] = guest

    def _allocate_id(self, table: str) -> int:
        new_id = self._next_ids[table]
        self._next_ids[table] = new_id - 1
        return new_id

    # ==================== USERS ====================

    def create_user(self, data: InsertUser) -> UserRecord:
        if self.get_user_by_username(data.username) is not None:
            raise DuplicateUsername(data.username)

        user = UserRecord(
            id=self._allocate_id("users"),
            username=data.username,
            password=data.password,
            display_name=data.display_name,
            created_at=datetime.now(timezone.utc),
            environment=data.environment,
        )
        self._tables["users"][user.id] = user
        logger.warning(f"[EMERGENCY] Created user {user.username!r} (id={user.id}) in memory only")
        return user

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        user = self._tables["users"].get(user_id)
        if user is not None:
            logger.warning(f"[EMERGENCY] Served user id={user_id} from memory")
        return user

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        wanted = username.lower()
        for user in self._tables["users"].values():
            if user.username.lower() == wanted:
                logger.warning(f"[EMERGENCY] Served user {user.username!r} from memory")
                return user
        return None

    def get_all_users(self) -> List[UserRecord]:
        return list(self._tables["users"].values())

    def update_user(self, user_id: int, updates: UserUpdate) -> Optional[UserRecord]:
        user = self._tables["users"].get(user_id)
        if user is None:
            return None
        changes = updates.model_dump(exclude_unset=True)
        user = user.model_copy(update=changes)
        self._tables["users"][user_id] = user
        logger.warning(f"[EMERGENCY] Updated user id={user_id} in memory ({', '.join(changes)})")
        return user

    # ==================== OTHER TABLES ====================

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """Store a row in one of the mirrored tables and return it with its id"""
        row = dict(values, id=self._allocate_id(table))
        self._tables[table][row["id"]] = row
        logger.warning(f"[EMERGENCY] Inserted {table} row id={row['id']} in memory only")
        return row

    def get(self, table: str, row_id: int) -> Optional[Any]:
        return self._tables[table].get(row_id)

    def counts(self) -> Dict[str, int]:
        return {name: len(rows) for name, rows in self._tables.items()}

    @property
    def has_emergency_data(self) -> bool:
        """True once anything beyond the seeded guest user has been stored"""
        return any(len(rows) > (1 if name == "users" else 0) for name, rows in self._tables.items())
