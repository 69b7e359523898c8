import sys
from pathlib import Path

# Ensure project root is on sys.path so `import keyserver` works without installing
ROOT = str(Path(__file__).resolve().parents[2])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from datetime import datetime, timedelta
import pytest
import pytest_asyncio
from unittest.mock import patch
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool, NullPool
from httpx import AsyncClient, ASGITransport

from keyserver.app.main import app
from keyserver.core.clock import get_clock
from keyserver.core.config import settings
from keyserver.core.database import Base, get_db
from keyserver.core.deps import get_session_manager
from keyserver.services.session_manager import SessionManager
import keyserver.models  # noqa: F401  (registers tables)

TEST_ADMIN_PASSWORD = "correct-horse-battery"
TEST_TEMP_PASSWORD = "temporary-staple"


class FakeClock:
    """Controllable naive-UTC clock; call it like keyserver.core.clock.utcnow."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# 1. Clock
@pytest.fixture(scope="function")
def clock():
    return FakeClock()


# 2. DB fixtures (in-memory SQLite shared through StaticPool)
@pytest_asyncio.fixture(scope="function")
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def file_session_factory(tmp_path):
    """
    File-backed SQLite with one connection per session, for tests that run
    several sessions at the same time.
    """
    file_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'keys.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )
    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)

    await file_engine.dispose()


# 3. Admin sessions
@pytest.fixture(scope="function")
def session_manager(clock):
    return SessionManager(ttl=timedelta(hours=24), clock=clock)


@pytest.fixture(scope="function")
def admin_passwords():
    with patch.object(settings, "ADMIN_DEFAULT_PASSWORD", TEST_ADMIN_PASSWORD), \
         patch.object(settings, "ADMIN_TEMP_PASSWORD", TEST_TEMP_PASSWORD):
        yield [TEST_ADMIN_PASSWORD, TEST_TEMP_PASSWORD]


# 4. Client Fixture (AsyncClient)
@pytest_asyncio.fixture(scope="function")
async def client(db_session, clock, session_manager, admin_passwords):
    """
    httpx.AsyncClient against the ASGI app with the DB session, clock and
    session manager swapped for test instances.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_session_manager] = lambda: session_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
