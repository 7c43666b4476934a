"""Identity dependencies."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.accounts.resolver import Identity, IdentityResolver
from tracksubs.api.dependencies.database import get_db
from tracksubs.core.exceptions import UnauthorizedError
from tracksubs.core.logging import bind_contextvars
from tracksubs.core.redis import get_redis

bearer_scheme = HTTPBearer(auto_error=False)


async def get_session_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Extract the bearer session token, rejecting requests without one."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    return credentials.credentials


async def get_identity_resolver(
    db: Annotated[AsyncSession, Depends(get_db)],
    redis_client: Annotated[Redis, Depends(get_redis)],
) -> IdentityResolver:
    """Build the identity resolver for this request."""
    return IdentityResolver(db, redis_client)


async def get_identity(
    token: Annotated[str, Depends(get_session_token)],
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
) -> Identity:
    """Resolve the caller's identity once per request."""
    identity = await resolver.resolve(token)
    bind_contextvars(user_id=str(identity.user_id))
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_identity)]
