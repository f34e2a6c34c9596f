"""Database configuration and connection management."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings

# Advisory lock namespaces (first key of pg_advisory_xact_lock)
APPOINTMENT_LOCK_NAMESPACE = 1001
QUEUE_LOCK_NAMESPACE = 1002

# Seconds a SQLite connection waits for the write lock
SQLITE_BUSY_TIMEOUT = 30


def build_async_url(database_url: str) -> str:
    """Convert a sync PostgreSQL URL to its asyncpg form."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def enable_immediate_transactions(engine: AsyncEngine) -> None:
    """
    Open every SQLite transaction with BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, so two sessions can both
    pass a conflict check before either inserts. BEGIN IMMEDIATE takes the
    database write lock when the transaction starts; concurrent writers
    wait on the busy timeout and then read committed state.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for(database_url: str, echo: bool = False, **engine_options: Any) -> AsyncEngine:
    """
    Create an async engine, with pooling options only where the driver supports them.

    Extra keyword arguments go to ``create_async_engine``. Passing a
    ``poolclass`` skips the default PostgreSQL pool sizing.
    """
    url = build_async_url(database_url)
    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}

    if url.startswith("postgresql+asyncpg://"):
        options["connect_args"] = {
            "server_settings": {
                "application_name": settings.app_name,
            },
        }
        if "poolclass" not in engine_options:
            options.update(pool_size=10, max_overflow=20, pool_recycle=3600)
    elif url.startswith("sqlite"):
        options["connect_args"] = {"timeout": SQLITE_BUSY_TIMEOUT}

    options.update(engine_options)
    new_engine = create_async_engine(url, **options)

    if new_engine.dialect.name == "sqlite":
        enable_immediate_transactions(new_engine)

    return new_engine


engine: AsyncEngine = create_engine_for(settings.database_url, echo=settings.debug)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def is_postgresql(db: AsyncSession) -> bool:
    """Check whether the session is bound to PostgreSQL."""
    return db.get_bind().dialect.name == "postgresql"


async def acquire_xact_lock(db: AsyncSession, namespace: int, key: int) -> None:
    """
    Take a transaction-scoped advisory lock.

    The lock is released on commit or rollback. SQLite has no advisory
    locks and skips this step; its engines open transactions with BEGIN
    IMMEDIATE (see ``enable_immediate_transactions``), which already
    serializes writers for the whole transaction.

    Args:
        db: Database session with an open transaction
        namespace: Lock namespace
        key: Lock key within the namespace
    """
    if not is_postgresql(db):
        return

    await db.execute(
        text("SELECT pg_advisory_xact_lock(:namespace, :key)"),
        {"namespace": namespace, "key": key},
    )


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
