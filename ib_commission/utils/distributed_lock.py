"""
Distributed lock.

Redis ``SET NX PX`` lock with token-checked release. When no Redis client is
configured, or Redis is unreachable, a process-local lock table is used so a
single worker still never runs the same job twice concurrently.
"""

import asyncio
import threading
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

# Delete the key only if it still holds our token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

POLL_INTERVAL_SECONDS = 0.1


class LockAcquisitionError(Exception):
    """Raised when a lock could not be acquired."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Could not acquire lock '{key}'")
        self.key = key


class DistributedLock:
    """
    Named mutual-exclusion lock shared between workers.

    Usage:
        lock = DistributedLock(redis_client=redis_client)
        async with lock.lock("monthly_ib_payout_2025-03", timeout=600):
            ...
    """

    # Process-local fallback: key -> (token, expires_at monotonic)
    _local_locks: dict[str, tuple[str, float]] = {}
    _local_guard = threading.Lock()

    def __init__(
        self, redis_client: Redis | None = None, key_prefix: str = "lock:"
    ) -> None:
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @classmethod
    def _try_local(cls, key: str, token: str, timeout: int) -> bool:
        now = time.monotonic()
        with cls._local_guard:
            held = cls._local_locks.get(key)
            if held is not None and held[1] > now:
                return False
            cls._local_locks[key] = (token, now + timeout)
            return True

    @classmethod
    def _release_local(cls, key: str, token: str) -> None:
        with cls._local_guard:
            held = cls._local_locks.get(key)
            if held is not None and held[0] == token:
                del cls._local_locks[key]

    async def _try_acquire(self, key: str, token: str, timeout: int) -> bool:
        if self.redis_client is not None:
            try:
                acquired = await self.redis_client.set(
                    key, token, nx=True, px=timeout * 1000
                )
                return bool(acquired)
            except RedisError as e:
                logger.warning(
                    f"Redis unavailable for lock {key}, using local lock: {e}"
                )
                self.redis_client = None
        return self._try_local(key, token, timeout)

    async def acquire(
        self,
        key: str,
        timeout: int = 60,
        blocking: bool = True,
        blocking_timeout: float | None = None,
    ) -> str | None:
        """
        Acquire the lock.

        Args:
            key: Lock name
            timeout: Seconds after which the lock expires on its own
            blocking: Wait for the lock instead of failing immediately
            blocking_timeout: Max seconds to wait (defaults to ``timeout``)

        Returns:
            Release token, or None if the lock was not acquired
        """
        full_key = self._full_key(key)
        token = uuid.uuid4().hex
        deadline = time.monotonic() + (
            blocking_timeout if blocking_timeout is not None else timeout
        )

        while True:
            if await self._try_acquire(full_key, token, timeout):
                logger.debug(f"Lock acquired: {full_key}")
                return token
            if not blocking or time.monotonic() >= deadline:
                return None
            await asyncio.sleep(POLL_INTERVAL_SECONDS)

    async def release(self, key: str, token: str) -> None:
        """Release the lock if it is still held with ``token``."""
        full_key = self._full_key(key)
        if self.redis_client is not None:
            try:
                await self.redis_client.eval(RELEASE_SCRIPT, 1, full_key, token)
            except RedisError as e:
                logger.warning(f"Failed to release lock {full_key}: {e}")
        # Also clears a local entry taken after a Redis failure
        self._release_local(full_key, token)
        logger.debug(f"Lock released: {full_key}")

    @asynccontextmanager
    async def lock(
        self,
        key: str,
        timeout: int = 60,
        blocking: bool = True,
        blocking_timeout: float | None = None,
    ) -> AsyncIterator[None]:
        """
        Hold the lock for the duration of the ``async with`` block.

        Raises:
            LockAcquisitionError: If the lock could not be acquired
        """
        token = await self.acquire(
            key,
            timeout=timeout,
            blocking=blocking,
            blocking_timeout=blocking_timeout,
        )
        if token is None:
            raise LockAcquisitionError(key)
        try:
            yield
        finally:
            await self.release(key, token)
