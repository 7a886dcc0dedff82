"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models are portable, so they
are created directly; Redis is replaced by an ``AsyncMock`` whose ``SET NX``
always succeeds unless a test says otherwise.
"""

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.api.middleware import limiter
from src.domain.enums import UserRole
from src.infrastructure import models  # noqa: F401  (registers tables)
from src.infrastructure.database import Base
from src.infrastructure.repositories import UserRepository
from src.infrastructure.security import create_session_token


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

BOOKING_PAYLOAD = {
    "vehicle_type": "van-3.5",
    "pickup_location": "Brooklyn Navy Yard",
    "dropoff_location": "Hoboken Terminal",
    "pickup_coords": "40.7003,-73.9710",
    "dropoff_coords": "40.7359,-74.0279",
    "estimated_price": "120.00",
}


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables on a fresh in-memory engine, drop it afterwards."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis_mock() -> AsyncMock:
    mock = AsyncMock()
    mock.set = AsyncMock(return_value=True)
    mock.eval = AsyncMock(return_value=1)
    return mock


@pytest_asyncio.fixture
async def app(session_factory, redis_mock):
    from src.api.app import create_app
    from src.api.dependencies import get_db
    from src.infrastructure.redis_client import get_redis

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_redis():
        return redis_mock

    limiter.reset()
    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_redis] = _test_redis
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _make_user(session_factory, username: str, role: UserRole) -> dict:
    async with session_factory() as session:
        user = await UserRepository(session).create(
            username=username, password_hash="not-used", role=role
        )
        await session.commit()
    token = create_session_token(user.id, user.username)
    return {
        "id": user.id,
        "username": user.username,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest_asyncio.fixture
async def customer(session_factory) -> dict:
    return await _make_user(session_factory, "alice", UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def other_customer(session_factory) -> dict:
    return await _make_user(session_factory, "bruno", UserRole.CUSTOMER)


@pytest.fixture
def booking_payload() -> dict:
    return dict(BOOKING_PAYLOAD)
