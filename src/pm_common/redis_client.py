"""Redis client factory — fixed-window counters for rate limiting only.

Nothing about RepScore, stakes or market aggregates lives in Redis; the
relational store is the single source of truth for those.
"""

import redis.asyncio as aioredis

from config.settings import settings

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None


async def hit_window(redis: aioredis.Redis, key: str, window_seconds: int) -> int:
    """INCR a fixed-window counter and arm its TTL, atomically. Returns the new count.

    EXPIRE NX only sets a TTL on a key that has none, so later hits never
    extend the window and a counter can never be left without one.
    """
    async with redis.pipeline(transaction=True) as pipe:
        pipe.incr(key)
        pipe.expire(key, window_seconds, nx=True)
        count, _ = await pipe.execute()
    return int(count)
