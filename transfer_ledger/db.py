from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from transfer_ledger.config import get_settings


def create_ledger_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Build the async engine, adding the SQLite transaction setup when needed.

    SQLite has no row locks, so every transaction takes the database write
    lock up front with ``BEGIN IMMEDIATE``; concurrent transfers then queue
    on it instead of failing at their first write.
    """
    eng = create_async_engine(url, echo=echo)
    if eng.dialect.name == "sqlite":
        _configure_sqlite(eng)
    return eng


def _configure_sqlite(eng: AsyncEngine) -> None:
    @event.listens_for(eng.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record) -> None:
        # stop the driver from emitting its own BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    @event.listens_for(eng.sync_engine, "begin")
    def on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


settings = get_settings()
engine = create_ledger_engine(settings.database_url, echo=settings.sql_echo)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return AsyncSessionLocal
