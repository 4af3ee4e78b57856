import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Tests run against an in-memory SQLite database unless DATABASE_URL is set
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "local")
os.environ.setdefault("MONEROO_SECRET_KEY", "test-moneroo-key")
os.environ.setdefault("MONEROO_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("FRONTEND_URL", "https://shop.example.com")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with the test env vars
get_settings.cache_clear()
settings = get_settings()

from libs.db.base import Base  # noqa: E402
from services.store_service import models as _store_models  # noqa: E402,F401
from services.store_service.app.main import app  # noqa: E402


@pytest_asyncio.fixture
async def test_engine():
    """
    Create a fresh in-memory database per test.
    StaticPool keeps the single connection alive so every session sees the same tables.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session shared by the test body and the app under test.
    """
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()

    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the app and overridden DB dependency.
    """
    from libs.db.session import get_async_db

    app.dependency_overrides[get_async_db] = lambda: db_session

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """
    Placeholder bearer header; auth itself is mocked through dependency overrides.
    """
    return {"Authorization": "Bearer mock-token"}
