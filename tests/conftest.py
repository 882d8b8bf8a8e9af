import pytest
from fastapi.testclient import TestClient

from watchlist_core import main
from watchlist_core.database import create_engine, create_tables
from watchlist_core.main import app
from watchlist_core.storage.gateway import StorageGateway
from watchlist_core.storage.raw_sql import RawSqlExecutor

from fakes import UnreachableExecutor, unreachable_session_factory


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test"""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'watchlist.db'}")
    await create_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def storage(engine):
    """Gateway with every tier healthy"""
    return StorageGateway.from_engine(engine, environment="test", emergency_enabled=False)


@pytest.fixture
def orm_down_storage(engine):
    """ORM path refuses connections, raw SQL still reaches the database"""
    return StorageGateway(
        unreachable_session_factory,
        RawSqlExecutor(engine),
        environment="test",
        emergency_enabled=False,
    )


@pytest.fixture
def make_outage_storage():
    """Build a gateway whose ORM and raw SQL tiers are both unreachable"""

    def make(environment="production", emergency_enabled=True, emergency=None):
        return StorageGateway(
            unreachable_session_factory,
            UnreachableExecutor(),
            emergency=emergency,
            environment=environment,
            emergency_enabled=emergency_enabled,
        )

    return make


@pytest.fixture
def client(tmp_path, monkeypatch):
    """FastAPI test client backed by its own SQLite database"""
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'api.db'}"
    monkeypatch.setattr(main, "create_engine", lambda: create_engine(database_url))
    app.state.storage = None

    with TestClient(app) as test_client:
        yield test_client

    app.state.storage = None
