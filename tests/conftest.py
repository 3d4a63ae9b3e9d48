import os

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from transfer_ledger.db import create_ledger_engine, get_session, get_session_factory
from transfer_ledger.main import app
from transfer_ledger.models.ledger import Base
from transfer_ledger.services.account_service import AccountService
from transfer_ledger.services.transfer_service import TransferService
from transfer_ledger.store.sql import SqlAccountStore

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"
    eng = create_ledger_engine(url)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False)


class RequestScopedAccounts:
    """AccountService that opens and closes a session per call, like a request does.

    A session left open would keep SQLite's write lock and stall transfers.
    """

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def __getattr__(self, name):
        async def call(*args, **kwargs):
            async with self.session_factory() as session:
                service = AccountService(SqlAccountStore(session))
                return await getattr(service, name)(*args, **kwargs)

        return call


@pytest_asyncio.fixture
async def accounts(session_factory):
    return RequestScopedAccounts(session_factory)


@pytest_asyncio.fixture
async def transfers(session_factory):
    return TransferService(session_factory, timeout=10)


@pytest_asyncio.fixture
async def balance_of(session_factory):
    """Read a balance through a fresh session, outside any test transaction."""

    async def read(account_id: int):
        async with session_factory() as session:
            account = await SqlAccountStore(session).get(account_id)
            return None if account is None else account.balance

    return read


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_session() -> AsyncSession:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c
    app.dependency_overrides.clear()
