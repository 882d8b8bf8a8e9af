"""
Stand-ins for a database that refuses every connection.
"""
from sqlalchemy.exc import OperationalError

from watchlist_core.storage.errors import QueryFailed
from watchlist_core.storage.raw_sql import RawSqlExecutor


def connection_refused(statement: str = "SELECT 1") -> OperationalError:
    """The error asyncpg surfaces through SQLAlchemy when Postgres is down"""
    return OperationalError(statement, {}, ConnectionRefusedError(111, "Connection refused"))


class UnreachableSession:
    """AsyncSession stand-in: every database round trip is refused"""

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def add(self, row):
        pass

    async def _refuse(self, *args, **kwargs):
        raise connection_refused()

    get = execute = commit = refresh = delete = _refuse


def unreachable_session_factory():
    return UnreachableSession()


class UnreachableExecutor(RawSqlExecutor):
    """Raw SQL tier whose every statement fails with a connection error"""

    def __init__(self):
        super().__init__(engine=None)
        self.calls = []

    async def execute(self, sql, params=(), operation="raw query"):
        self.calls.append(operation)
        raise QueryFailed(operation, connection_refused(sql))
