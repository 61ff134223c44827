"""
Fixed-window rate limiter for Gateway service.
"""

from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis
from fastapi import Request

from shared.errors import RateLimitError
from shared.logging import get_logger


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    current_count: int
    limit: int
    reset_in_seconds: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current_count)


class FixedWindowRateLimiter:
    """Per-client request counter shared between gateway instances via Redis.

    The first request of a window creates the key with a TTL equal to the
    window; later requests only increment it. When Redis is unreachable the
    limiter fails open and logs the error.
    """

    def __init__(self, redis_url: str, window_seconds: int = 900, max_requests: int = 100,
                 redis_client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.logger = get_logger("gateway.rate_limiter")
        self._redis = redis_client

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        return self._redis

    def _make_key(self, client_id: str) -> str:
        return f"rate_limit:{client_id}"

    async def check(self, client_id: str) -> RateLimitDecision:
        """Count one request for ``client_id`` in the current window."""
        key = self._make_key(client_id)
        try:
            redis_client = await self._get_redis()
            async with redis_client.pipeline(transaction=True) as pipeline:
                pipeline.incr(key)
                pipeline.ttl(key)
                count, ttl = await pipeline.execute()

            if ttl is None or ttl < 0:
                await redis_client.expire(key, self.window_seconds)
                ttl = self.window_seconds
        except (redis.RedisError, OSError) as e:
            self.logger.error("Rate limit check error", error=str(e), client_id=client_id)
            return RateLimitDecision(True, 0, self.max_requests, self.window_seconds)

        count = int(count)
        decision = RateLimitDecision(count <= self.max_requests, count, self.max_requests, int(ttl))
        if not decision.allowed:
            self.logger.warning(
                "Rate limit exceeded",
                client_id=client_id,
                current_count=count,
                limit=self.max_requests,
            )
        return decision

    async def enforce(self, client_id: str) -> RateLimitDecision:
        """Like ``check`` but raise once the window is exhausted."""
        decision = await self.check(client_id)
        if not decision.allowed:
            raise RateLimitError(details={"retry_after": decision.reset_in_seconds})
        return decision

    async def ping(self) -> bool:
        try:
            redis_client = await self._get_redis()
            return bool(await redis_client.ping())
        except (redis.RedisError, OSError) as e:
            self.logger.warning("Rate limit store unreachable", error=str(e))
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def client_id_for(request: Request) -> str:
    """Key requests by the originating address."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"
