"""Revoked session tokens, kept in Redis until they would expire anyway."""

from redis.asyncio import Redis

from tracksubs.core.config import get_settings

settings = get_settings()

BLACKLIST_PREFIX = "blacklist:token:"


def _key(token: str) -> str:
    return f"{BLACKLIST_PREFIX}{token}"


async def add_token_to_blacklist(
    redis_client: Redis,
    token: str,
    expire_seconds: int | None = None,
) -> None:
    """Revoke a session token.

    Args:
        redis_client: Redis client instance
        token: The session token to revoke
        expire_seconds: Key TTL, defaults to the access token lifetime
    """
    if expire_seconds is None:
        expire_seconds = settings.jwt_access_token_expire_minutes * 60
    await redis_client.setex(_key(token), expire_seconds, "1")


async def is_token_blacklisted(redis_client: Redis, token: str) -> bool:
    """Check whether a session token has been revoked."""
    return bool(await redis_client.exists(_key(token)) > 0)
