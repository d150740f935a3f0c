"""Shared test fixtures — single test DB for all test modules."""
from __future__ import annotations

from contextlib import asynccontextmanager

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

# Use a shared in-memory DB with check_same_thread=False and StaticPool
# This ensures all connections see the same in-memory database.
from sqlalchemy.pool import StaticPool

from src.db.tables import Base
from src.db.engine import get_session

TEST_DB_URL = "sqlite+aiosqlite:///file:test?mode=memory&cache=shared&uri=true"

test_engine = create_async_engine(
    TEST_DB_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = async_sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)


async def override_get_session():
    async with TestSession() as session:
        yield session


# Import app and override BEFORE any test module imports app
from src.api.main import app  # noqa: E402
from src.api.food import get_usda_service  # noqa: E402
from src.services.ai import AIService, get_ai_service  # noqa: E402
from src.services.usda import UsdaFoodService  # noqa: E402

app.dependency_overrides[get_session] = override_get_session
# No network in tests: both providers run on their local fallbacks
app.dependency_overrides[get_ai_service] = lambda: AIService(api_key="")
app.dependency_overrides[get_usda_service] = lambda: UsdaFoodService(api_key="")

# Patch the engine module so the notification job and seeding use the test DB
import src.db.engine as _engine_mod  # noqa: E402
_engine_mod.async_session = TestSession
_engine_mod.engine = test_engine


@asynccontextmanager
async def get_test_session():
    """Context manager for seeding data in tests."""
    async with TestSession() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create tables and seed meal types and foods before each test, drop after."""
    import src.db.plan_tables  # noqa: F401
    import src.db.tracking_tables  # noqa: F401
    import src.db.user_tables  # noqa: F401
    from src.api.main import seed_reference_data
    from src.middleware.rate_limit import reset_store
    from src.services.chat import chat_history

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_reference_data()

    yield

    # Reset in-process state between tests
    reset_store()
    chat_history.clear()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register(client, email="user@test.com", password="secret123", **extra) -> dict:
    resp = await client.post("/api/register", json={"email": email, "password": password, **extra})
    assert resp.status_code == 201, f"Register failed: {resp.text}"
    return resp.json()


@pytest_asyncio.fixture
async def auth(client) -> dict:
    """Authorization header for a freshly registered user."""
    data = await register(client)
    return {"Authorization": f"Bearer {data['access_token']}"}
