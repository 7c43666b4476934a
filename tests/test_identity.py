"""Tests for session token identity resolution."""

from datetime import timedelta

import pytest
from jose import jwt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.accounts.resolver import Identity, IdentityResolver
from tracksubs.core.config import get_settings
from tracksubs.core.exceptions import InvalidTokenError, TokenRevokedError, UnauthorizedError
from tracksubs.core.security import create_access_token
from tracksubs.models.user import Usage, User, UserPlan


@pytest.mark.asyncio
async def test_first_access_provisions_user(db_session: AsyncSession, redis_client) -> None:
    token = create_access_token(
        {"sub": "auth_new", "email": "new@example.com", "first_name": "Ada"},
    )

    identity = await IdentityResolver(db_session, redis_client).resolve(token)

    user = await db_session.scalar(select(User).where(User.id == identity.user_id))
    assert user is not None
    assert user.auth_id == "auth_new"
    assert user.email == "new@example.com"
    assert user.first_name == "Ada"
    assert user.last_name is None
    assert user.plan == UserPlan.FREE

    usage = await db_session.scalar(select(Usage).where(Usage.id == user.usage_id))
    assert (usage.total_subscriptions, usage.total_alerts) == (0, 0)


@pytest.mark.asyncio
async def test_repeat_access_returns_same_user(db_session: AsyncSession, redis_client) -> None:
    resolver = IdentityResolver(db_session, redis_client)
    token = create_access_token({"sub": "auth_repeat"})

    first = await resolver.resolve(token)
    second = await resolver.resolve(create_access_token({"sub": "auth_repeat"}))

    assert first == second
    assert await db_session.scalar(select(func.count()).select_from(User)) == 1
    assert await db_session.scalar(select(func.count()).select_from(Usage)) == 1


@pytest.mark.asyncio
async def test_existing_user_is_resolved(
    db_session: AsyncSession, redis_client, identity: Identity
) -> None:
    token = create_access_token({"sub": identity.auth_id})

    assert await IdentityResolver(db_session, redis_client).resolve(token) == identity


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, ""])
async def test_missing_token(db_session: AsyncSession, redis_client, token) -> None:
    with pytest.raises(UnauthorizedError):
        await IdentityResolver(db_session, redis_client).resolve(token)


@pytest.mark.asyncio
async def test_malformed_token(db_session: AsyncSession, redis_client) -> None:
    with pytest.raises(InvalidTokenError):
        await IdentityResolver(db_session, redis_client).resolve("not.a.token")


@pytest.mark.asyncio
async def test_expired_token(db_session: AsyncSession, redis_client) -> None:
    token = create_access_token({"sub": "auth_late"}, expires_delta=timedelta(minutes=-5))

    with pytest.raises(InvalidTokenError):
        await IdentityResolver(db_session, redis_client).resolve(token)

    assert await db_session.scalar(select(func.count()).select_from(User)) == 0


@pytest.mark.asyncio
async def test_wrong_token_type(db_session: AsyncSession, redis_client) -> None:
    settings = get_settings()
    token = jwt.encode(
        {"sub": "auth_refresh", "type": "refresh"},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(InvalidTokenError):
        await IdentityResolver(db_session, redis_client).resolve(token)


@pytest.mark.asyncio
async def test_token_without_subject(db_session: AsyncSession, redis_client) -> None:
    token = create_access_token({"email": "nobody@example.com"})

    with pytest.raises(InvalidTokenError) as exc_info:
        await IdentityResolver(db_session, redis_client).resolve(token)

    assert exc_info.value.details == {"claim": "sub"}


@pytest.mark.asyncio
async def test_revoked_token(db_session: AsyncSession, redis_client, identity: Identity) -> None:
    resolver = IdentityResolver(db_session, redis_client)
    token = create_access_token({"sub": identity.auth_id})
    assert await resolver.resolve(token) == identity

    await resolver.revoke(token)

    with pytest.raises(TokenRevokedError):
        await resolver.resolve(token)
    assert await redis_client.ttl(f"blacklist:token:{token}") == 3600
