import os
import sys

import httpx
from httpx import AsyncClient
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Keep the module-level engine off the developer database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# Add the project root to the path so imports work
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.client import ClientConfig, CsrfClient
from app.database import Base, get_db
from app.models.user import User
from app.security.session_store import SessionStore
from main import app

# Test database URL - use PostgreSQL in CI, SQLite locally
if os.getenv("CI") and os.getenv("TEST_DATABASE_URL"):
    TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")
else:
    TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_URL = "http://test"


class RecordingTransport(httpx.ASGITransport):
    """ASGI transport that remembers every request it carries."""

    def __init__(self, app):
        super().__init__(app=app)
        self.requests = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return await super().handle_async_request(request)

    def calls(self):
        return [(request.method, request.url.path) for request in self.requests]


@pytest_asyncio.fixture
async def test_sessionmaker():
    """Create a fresh database and return a session factory for it."""
    # Different connection args for SQLite vs PostgreSQL
    if "sqlite" in TEST_DATABASE_URL:
        connect_args = {"check_same_thread": False}
        poolclass = StaticPool
    else:
        connect_args = {}
        poolclass = None

    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=poolclass,
        connect_args=connect_args,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_sessionmaker):
    """Create a test database session."""
    session = test_sessionmaker()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def session_store(test_sessionmaker):
    return SessionStore(test_sessionmaker)


@pytest_asyncio.fixture
async def client(test_sessionmaker, session_store):
    """Create a test client wired to the test database."""

    async def override_get_db():
        async with test_sessionmaker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    original_store = app.state.session_store
    app.state.session_store = session_store

    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL) as ac:
        yield ac

    # Clean up
    app.state.session_store = original_store
    app.dependency_overrides.clear()


@pytest.fixture
def recording_transport(client):
    """Transport over the test-wired app; depends on ``client`` for the wiring."""
    return RecordingTransport(app)


@pytest_asyncio.fixture
async def csrf_client(recording_transport):
    """CSRF-aware API client talking to the app in-process."""
    api = CsrfClient(ClientConfig(base_url=BASE_URL), transport=recording_transport)
    async with api:
        yield api


@pytest_asyncio.fixture
async def csrf_token(client):
    """Prime ``client`` with a session and return its CSRF token."""
    response = await client.get("/csrf-cookie")
    assert response.status_code == 204
    return client.cookies.get("XSRF-TOKEN")


@pytest_asyncio.fixture
async def test_user(test_db):
    """Create a test user in the database."""
    user = User(
        username="jdoe",
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        phone="+15550100",
    )

    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)

    return user
