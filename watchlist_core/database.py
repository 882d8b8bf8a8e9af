from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
import logging

from watchlist_core import config

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_engine(database_url: str = None) -> AsyncEngine:
    """
    Create the async engine used by both the ORM path and the raw SQL path.

    PostgreSQL gets a QueuePool sized from the environment; SQLite keeps
    SQLAlchemy's default pool since it does not accept the sizing arguments.
    """
    url = database_url or config.DATABASE_URL
    options = {"echo": config.DB_ECHO}

    if not url.startswith("sqlite"):
        options.update(
            pool_size=config.DB_POOL_SIZE,  # Number of connections to keep open
            max_overflow=config.DB_MAX_OVERFLOW,  # Max connections beyond pool_size
            pool_timeout=config.DB_POOL_TIMEOUT,  # Seconds to wait for connection
            pool_recycle=config.DB_POOL_RECYCLE,  # Recycle connections after 1 hour
            pool_pre_ping=True,
        )

    engine = create_async_engine(url, **options)
    is_sqlite = url.startswith("sqlite")

    # Pool events fire on the underlying sync engine
    @event.listens_for(engine.sync_engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        """Log when a new connection is created"""
        if is_sqlite:
            # SQLite ignores FOREIGN KEY clauses (cascades included) unless asked per connection
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
        logger.debug("Database connection established")

    @event.listens_for(engine.sync_engine, "checkout")
    def receive_checkout(dbapi_conn, connection_record, connection_proxy):
        """Log when a connection is checked out from the pool"""
        logger.debug("Connection checked out from pool")

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory for the ORM-mapped path."""
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table registered on Base (idempotent)."""
    # Import models so they are registered with Base
    import watchlist_core.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
