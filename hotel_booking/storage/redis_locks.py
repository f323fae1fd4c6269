"""Per-room-type mutual exclusion for reservation creation.

Two interchangeable helpers expose ``acquire_room_type_lock(room_type)``,
an async context manager yielding whether the lock was obtained within
the wait timeout:

- ``RedisLockHelper`` for multi-process deployments.
- ``LocalLockHelper`` for a single process (one ``asyncio.Lock`` per key).
"""

import asyncio
from collections import defaultdict
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncGenerator, Protocol

import redis.asyncio as redis
from redis.exceptions import LockError

from hotel_booking.logging import get_logger

logger = get_logger(__name__)

LOCK_KEY_PREFIX = "hotel:lock:room_type"


def room_type_lock_key(room_type: str) -> str:
    return f"{LOCK_KEY_PREFIX}:{room_type}"


class RoomTypeLock(Protocol):
    """Lock helper interface used by the reservation flow."""

    def acquire_room_type_lock(self, room_type: str) -> AbstractAsyncContextManager[bool]:
        ...


class RedisLockHelper:
    """Helper for Redis-based distributed locking."""

    def __init__(self, redis_url: str, ttl_seconds: int = 10, wait_timeout_seconds: float = 5.0):
        """Initialize Redis lock helper.

        Args:
            redis_url: Redis connection URL
            ttl_seconds: Lock expiry, bounds how long a crashed holder blocks others
            wait_timeout_seconds: How long a caller waits for a busy lock
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.wait_timeout_seconds = wait_timeout_seconds
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        self._client = redis.from_url(self.redis_url, encoding="utf-8")

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def acquire_room_type_lock(
        self, room_type: str
    ) -> AsyncGenerator[bool, None]:
        """Acquire exclusive lock on a room type for reservation creation."""
        if not self._client:
            raise RuntimeError("Redis client not connected")

        lock = self._client.lock(
            room_type_lock_key(room_type),
            timeout=self.ttl_seconds,
            blocking_timeout=self.wait_timeout_seconds,
        )
        acquired = False

        try:
            acquired = await lock.acquire()
            yield bool(acquired)
        finally:
            if acquired:
                try:
                    await lock.release()
                except LockError:
                    # TTL elapsed while held; another holder may already own it
                    logger.warning("room_type_lock_expired_before_release", room_type=room_type)

    async def is_locked(self, room_type: str) -> bool:
        """Check if room type is currently locked."""
        if not self._client:
            raise RuntimeError("Redis client not connected")

        return bool(await self._client.exists(room_type_lock_key(room_type)))


class LocalLockHelper:
    """In-process locking, valid only when a single process creates reservations."""

    def __init__(self, wait_timeout_seconds: float = 5.0):
        self.wait_timeout_seconds = wait_timeout_seconds
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def connect(self) -> None:
        return None

    async def disconnect(self) -> None:
        return None

    @asynccontextmanager
    async def acquire_room_type_lock(
        self, room_type: str
    ) -> AsyncGenerator[bool, None]:
        """Acquire exclusive lock on a room type, waiting up to the timeout."""
        lock = self._locks[room_type]
        acquired = False

        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.wait_timeout_seconds)
                acquired = True
            except asyncio.TimeoutError:
                acquired = False
            yield acquired
        finally:
            if acquired:
                lock.release()

    async def is_locked(self, room_type: str) -> bool:
        return self._locks[room_type].locked()
