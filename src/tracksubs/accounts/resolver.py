"""Identity resolution for session tokens.

Every core operation takes an explicit ``Identity`` as its first argument.
The resolver is the only place that turns a session token into one; it
provisions the user (with a zeroed usage row) the first time an auth identity
is seen.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tracksubs.core.database import atomic
from tracksubs.core.exceptions import (
    ConflictError,
    InvalidTokenError,
    TokenRevokedError,
    UnauthorizedError,
)
from tracksubs.core.logging import LoggerMixin
from tracksubs.core.security import ACCESS_TOKEN_TYPE, decode_token, verify_token_type
from tracksubs.core.token_blacklist import add_token_to_blacklist, is_token_blacklisted
from tracksubs.models.user import Usage, User

PROFILE_CLAIMS = ("email", "first_name", "last_name", "image_url")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller: internal user id plus external auth identity."""

    user_id: UUID
    auth_id: str


class IdentityResolver(LoggerMixin):
    """Resolve session tokens to identities."""

    def __init__(self, db: AsyncSession, redis_client: Redis) -> None:
        """Initialize identity resolver.

        Args:
            db: Database session
            redis_client: Redis client holding the revocation list
        """
        self.db = db
        self.redis = redis_client

    async def resolve(self, token: str | None) -> Identity:
        """Resolve a session token, provisioning the user on first access.

        Raises:
            UnauthorizedError: If the token is missing
            TokenRevokedError: If the token was revoked
            InvalidTokenError: If the token is malformed, expired or of the wrong type
        """
        if not token:
            raise UnauthorizedError()

        if await is_token_blacklisted(self.redis, token):
            raise TokenRevokedError()

        payload = decode_token(token)
        if payload is None or not verify_token_type(payload, ACCESS_TOKEN_TYPE):
            raise InvalidTokenError()

        auth_id = payload.get("sub")
        if not auth_id:
            raise InvalidTokenError(details={"claim": "sub"})

        user_id = await self._find_user_id(auth_id)
        if user_id is None:
            user_id = await self._provision(auth_id, payload)

        return Identity(user_id=user_id, auth_id=auth_id)

    async def revoke(self, token: str) -> None:
        """Add a session token to the revocation list."""
        await add_token_to_blacklist(self.redis, token)
        self.logger.info("session_revoked")

    async def _find_user_id(self, auth_id: str) -> UUID | None:
        return await self.db.scalar(select(User.id).where(User.auth_id == auth_id))

    async def _provision(self, auth_id: str, claims: dict[str, Any]) -> UUID:
        profile = {claim: claims[claim] for claim in PROFILE_CLAIMS if claims.get(claim)}
        try:
            async with atomic(self.db):
                usage = Usage(total_subscriptions=0, total_alerts=0)
                self.db.add(usage)
                await self.db.flush()

                user = User(auth_id=auth_id, usage_id=usage.id, **profile)
                self.db.add(user)
                await self.db.flush()
        except ConflictError:
            # Lost a race with a concurrent first request for the same identity.
            user_id = await self._find_user_id(auth_id)
            if user_id is None:
                raise
            return user_id

        self.logger.info("user_provisioned", user_id=str(user.id), auth_id=auth_id)
        return user.id
