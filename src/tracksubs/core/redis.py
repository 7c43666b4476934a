"""Shared Redis client backing the session revocation list."""

from redis.asyncio import Redis
from redis.exceptions import RedisError

from tracksubs.core.config import get_settings

_client: Redis | None = None


async def get_redis() -> Redis:
    """Return the process-wide client, connecting lazily on first use."""
    global _client
    if _client is None:
        _client = Redis.from_url(get_settings().redis_url, decode_responses=True)
    return _client


async def close_redis() -> None:
    """Drop the shared client on shutdown."""
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()


async def check_redis_connection() -> bool:
    """Readiness check: is the revocation list reachable."""
    try:
        client = await get_redis()
        return bool(await client.ping())
    except RedisError:
        return False
