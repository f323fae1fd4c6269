"""Rate limiting for booking API calls."""

import time
from typing import Optional

import redis.asyncio as redis

from hotel_booking.errors import RateLimited
from hotel_booking.logging import get_logger
from hotel_booking.logging.audit import AuditLogger

logger = get_logger(__name__)

KEY_PREFIX = "hotel:ratelimit"


def rate_limit_key(action: str, identity: str) -> str:
    return f"{KEY_PREFIX}:{action}:{identity}"


class RateLimiter:
    """Redis-based sliding window rate limiter."""

    def __init__(
        self,
        redis_url: str,
        max_requests: int = 10,
        window_seconds: int = 60,
    ):
        """Initialize rate limiter."""
        self.redis_url = redis_url
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        self._client = redis.from_url(self.redis_url, encoding="utf-8")

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def check_rate_limit(self, identity: str, action: str) -> tuple[bool, Optional[int]]:
        """Check if identity has exceeded rate limit.

        Returns:
            (is_allowed, retry_after_seconds)
        """
        if not self._client:
            raise RuntimeError("Redis client not connected")

        key = rate_limit_key(action, identity)
        now = time.time()
        window_start = now - self.window_seconds

        # Drop entries outside the window
        await self._client.zremrangebyscore(key, 0, window_start)

        count = await self._client.zcard(key)

        if count >= self.max_requests:
            oldest = await self._client.zrange(key, 0, 0, withscores=True)
            if oldest:
                retry_after = int(oldest[0][1] + self.window_seconds - now) + 1
                return False, max(retry_after, 1)
            return False, self.window_seconds

        await self._client.zadd(key, {f"{now:.6f}": now})
        await self._client.expire(key, self.window_seconds)

        return True, None

    async def enforce(self, identity: str, action: str) -> None:
        """Raise RateLimited when identity is over budget for action."""
        allowed, retry_after = await self.check_rate_limit(identity, action)
        if allowed:
            return

        logger.warning(
            "rate_limit_exceeded",
            identity=identity,
            action=action,
            retry_after=retry_after,
        )
        AuditLogger.log_rate_limit_exceeded(
            actor_id=identity,
            action=action,
            limit=self.max_requests,
            window_seconds=self.window_seconds,
        )
        raise RateLimited(
            "Too many requests. Please try again later.",
            retry_after=retry_after,
        )

    async def reset_limit(self, identity: str, action: str) -> None:
        """Reset rate limit for identity action."""
        if not self._client:
            raise RuntimeError("Redis client not connected")

        await self._client.delete(rate_limit_key(action, identity))
