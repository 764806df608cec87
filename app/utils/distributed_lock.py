"""
Distributed lock on Redis.

Keeps two workers from running the same batch at once. The lock
expires on its own after ``timeout`` so a crashed worker cannot hold it
forever.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import LockError, RedisError


class DistributedLock:
    """Non-blocking named lock; without a Redis client it always succeeds."""

    def __init__(self, redis_client: redis.Redis | None = None, prefix: str = "lock:") -> None:
        self.redis_client = redis_client
        self.prefix = prefix

    @asynccontextmanager
    async def lock(self, key: str, timeout: float = 60) -> AsyncIterator[bool]:
        """
        Try to take the lock for the duration of the block.

        Args:
            key: Lock name
            timeout: Seconds before Redis expires the lock

        Yields:
            True if this caller holds the lock, False if someone else does
        """
        if self.redis_client is None:
            logger.warning(f"No Redis client, running {key} without a lock")
            yield True
            return

        redis_lock = self.redis_client.lock(f"{self.prefix}{key}", timeout=timeout)
        try:
            acquired = await redis_lock.acquire(blocking=False)
        except RedisError as e:
            logger.warning(f"Could not reach Redis for lock {key}: {e}, running unlocked")
            redis_lock = None

        if redis_lock is None:
            yield True
            return

        if not acquired:
            logger.info(f"Lock {key} is held by another worker")
            yield False
            return

        try:
            yield True
        finally:
            try:
                await redis_lock.release()
            except LockError:
                logger.warning(f"Lock {key} expired before release")
