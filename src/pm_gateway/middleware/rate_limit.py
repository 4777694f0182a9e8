"""Fixed-window rate limiting for user-triggered writes.

Key pattern: "ratelimit:{group}:{user_id}", one MULTI/EXEC of INCR and
EXPIRE NX per request, so the TTL is armed on the first hit of each window.
Counters live only in Redis; when Redis is unreachable the request is let
through and a warning logged.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.pm_common.errors import RateLimitError
from src.pm_common.redis_client import hit_window

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    def __init__(self, group: str, limit: int, window_seconds: int = 60) -> None:
        self.group = group
        self.limit = limit
        self.window_seconds = window_seconds

    def key_for(self, subject: str) -> str:
        return f"ratelimit:{self.group}:{subject}"

    async def hit(self, redis: aioredis.Redis, subject: str) -> int:
        """Count one request for `subject`; raise RateLimitError over the limit."""
        try:
            count = await hit_window(redis, self.key_for(subject), self.window_seconds)
        except RedisError:
            logger.warning("Rate limiter unavailable for %s, allowing request", self.group)
            return 0
        if count > self.limit:
            raise RateLimitError()
        return count
