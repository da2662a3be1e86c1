"""Shared test fixtures for the RWA marketplace test suite.

Uses an in-memory SQLite database with StaticPool so all sessions share the
same connection (committed data is visible across sessions).
"""

import secrets

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rwa_marketplace.database import Base, get_db
from rwa_marketplace.main import app
from rwa_marketplace.models import *  # noqa: ensure all models are loaded for create_all


# ---------------------------------------------------------------------------
# In-memory SQLite test engine (shared via StaticPool)
# ---------------------------------------------------------------------------

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


# ---------------------------------------------------------------------------
# Auto-use: create/drop tables for every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    from rwa_marketplace.core.live_feed import ledger_feed

    await ledger_feed.drain()
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def db():
    """Yield a fresh AsyncSession for direct service-layer tests."""
    async with TestSession() as session:
        yield session


@pytest.fixture
async def client():
    """httpx AsyncClient wired to the FastAPI app with test DB override."""
    import httpx

    async def _override_get_db():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------

def new_address() -> str:
    return "0x" + secrets.token_hex(20)


@pytest.fixture
def auth_header():
    """Return a callable that builds an Authorization header from a JWT."""
    def _build(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}
    return _build


@pytest.fixture
def make_wallet():
    """Factory fixture: return (address, jwt_token) for a fresh wallet."""
    from rwa_marketplace.core.auth import create_access_token

    def _make():
        address = new_address()
        return address, create_access_token(address)

    return _make


@pytest.fixture
def deploy(db: AsyncSession):
    """Factory fixture: deploy a token contract and return it."""
    from rwa_marketplace.services import access_service

    async def _deploy(owner: str | None = None, **kwargs):
        return await access_service.deploy_contract(db, owner or new_address(), **kwargs)

    return _deploy


@pytest.fixture
async def market(db: AsyncSession, deploy):
    """A deployed contract with an owner, a seller holding 10 of token 1 and a funded buyer."""
    from rwa_marketplace.services import ledger_service, payment_service

    owner, seller, buyer = new_address(), new_address(), new_address()
    contract = await deploy(owner)
    await ledger_service.mint(db, contract.address, owner, seller, 1, 10)
    await payment_service.deposit(db, buyer, 100)
    return {
        "contract": contract.address,
        "owner": owner,
        "seller": seller,
        "buyer": buyer,
    }


@pytest.fixture
def addr():
    """Callable returning a fresh random wallet address."""
    return new_address


@pytest.fixture
def session_factory():
    """The test sessionmaker, for tests that need several independent sessions."""
    return TestSession
