"""Test configuration and fixtures."""

from __future__ import annotations

import os

# Settings are read once at import time; point them at SQLite before any
# tracksubs module is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "development")

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import tracksubs.billing.models  # noqa: F401 - registers subscription and ledger tables
from tracksubs.accounts.resolver import Identity
from tracksubs.api.dependencies.database import get_db
from tracksubs.api.main import app
from tracksubs.billing.models import BillingInterval, Subscription
from tracksubs.billing.registry import SubscriptionRegistry
from tracksubs.billing.schemas import SubscriptionCreate
from tracksubs.core.redis import get_redis
from tracksubs.core.security import create_access_token
from tracksubs.models.base import Base
from tracksubs.models.user import Usage, User, UserPlan

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a fresh in-memory schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session

    await engine.dispose()


class StatefulRedisMock:
    """A Redis mock that tracks the keys it is given."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def setex(self, key: str, seconds: int, value: str) -> bool:
        self._data[key] = value
        self._ttls[key] = seconds
        return True

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                self._ttls.pop(key, None)
                count += 1
        return count

    async def exists(self, *keys: str) -> int:
        return sum(1 for k in keys if k in self._data)

    async def ttl(self, key: str) -> int:
        return self._ttls.get(key, -2)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


@pytest.fixture
def redis_client() -> StatefulRedisMock:
    """Create a stateful Redis mock."""
    return StatefulRedisMock()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    redis_client: StatefulRedisMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database session and redis override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_redis() -> StatefulRedisMock:
        return redis_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(
    session: AsyncSession,
    auth_id: str,
    plan: UserPlan = UserPlan.FREE,
) -> Identity:
    """Insert a committed user with zeroed usage counters."""
    usage = Usage(total_subscriptions=0, total_alerts=0)
    session.add(usage)
    await session.flush()

    user = User(auth_id=auth_id, usage_id=usage.id, email=f"{auth_id}@example.com", plan=plan)
    session.add(user)
    await session.commit()
    return Identity(user_id=user.id, auth_id=auth_id)


@pytest_asyncio.fixture
async def identity(db_session: AsyncSession) -> Identity:
    """A FREE-plan user."""
    return await create_user(db_session, "auth_alice")


@pytest_asyncio.fixture
async def other_identity(db_session: AsyncSession) -> Identity:
    """A second user, for ownership isolation checks."""
    return await create_user(db_session, "auth_bob")


@pytest_asyncio.fixture
async def pro_identity(db_session: AsyncSession) -> Identity:
    """A PRO-plan user."""
    return await create_user(db_session, "auth_carol", plan=UserPlan.PRO)


def subscription_fields(**overrides: Any) -> SubscriptionCreate:
    """Valid subscription creation payload."""
    fields: dict[str, Any] = {
        "title": "Netflix",
        "website": "https://netflix.com",
        "service": "netflix",
        "amount": 1000,
        "currency": "USD",
        "interval": BillingInterval.MONTHLY,
        "next_billing_date": date(2024, 1, 1),
    }
    fields.update(overrides)
    return SubscriptionCreate(**fields)


@pytest.fixture
def make_subscription(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Subscription]]:
    """Factory that creates a subscription through the registry and commits it."""

    async def _make(owner: Identity, **overrides: Any) -> Subscription:
        subscription = await SubscriptionRegistry(db_session).create(
            owner.user_id,
            subscription_fields(**overrides),
        )
        await db_session.commit()
        return subscription

    return _make


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Factory for bearer headers carrying a session token with ``sub=auth_id``."""

    def _headers(auth_id: str, **claims: Any) -> dict[str, str]:
        token = create_access_token({"sub": auth_id, **claims})
        return {"Authorization": f"Bearer {token}"}

    return _headers
