import asyncio
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from redis import RedisError
from redis.asyncio import Redis as AsyncRedis

from ..domain.ports.rate_limit import BucketLockTimeout, BucketState, BucketStorePort

logger = logging.getLogger("vietadmin.redis")

BUCKET_KEY_PREFIX = "ratelimit"


def get_async_redis_client(redis_url: str) -> AsyncRedis:
    """Create an async Redis client for ``redis_url``."""
    if not redis_url:
        raise ValueError("REDIS_URL must be set when RATE_LIMIT_BACKEND=redis")
    return AsyncRedis.from_url(redis_url, encoding="utf-8", decode_responses=True)


_client: AsyncRedis | None = None


def get_redis(redis_url: str) -> AsyncRedis:
    """Return the process-wide client, creating it on first use."""
    global _client
    if _client is None:
        _client = get_async_redis_client(redis_url)
        logger.info("Redis client created")
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis connection closed")


# Deletes the lock only while it still holds this owner's token
RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class DistributedLock:
    """
    Distributed lock using Redis SET NX PX.
    Ensures only one instance across multiple workers can hold the lock.
    The lock value is a per-holder token; release deletes it only while it
    still holds that token.
    """

    def __init__(self, redis_client: AsyncRedis, lock_key: str, ttl_ms: int = 2000):
        """
        Args:
            redis_client: Async Redis client
            lock_key: Unique key for this lock
            ttl_ms: Lock TTL (auto-release on crash)
        """
        self._redis = redis_client
        self._lock_key = f"lock:{lock_key}"
        self._ttl_ms = ttl_ms
        self._token = secrets.token_hex(16)
        self._acquired = False

    @property
    def acquired(self) -> bool:
        return self._acquired

    async def acquire(self) -> bool:
        """
        Attempt to acquire the lock.
        Returns True if acquired, False otherwise.
        """
        try:
            result = await self._redis.set(
                self._lock_key, self._token, nx=True, px=self._ttl_ms
            )
            self._acquired = bool(result)
            if self._acquired:
                logger.debug("Acquired lock: %s (TTL=%dms)", self._lock_key, self._ttl_ms)
            return self._acquired
        except RedisError as exc:
            logger.error(
                "Redis operation failed operation=SET key=%s error=%s",
                self._lock_key,
                exc,
            )
            return False

    async def release(self) -> bool:
        """
        Release the lock if this instance still owns it.
        Returns True if released, False otherwise.
        """
        if not self._acquired:
            return False
        self._acquired = False
        try:
            deleted = await self._redis.eval(RELEASE_SCRIPT, 1, self._lock_key, self._token)
        except RedisError as exc:
            logger.error(
                "Redis operation failed operation=EVAL key=%s error=%s",
                self._lock_key,
                exc,
            )
            return False
        if deleted:
            logger.debug("Released lock: %s", self._lock_key)
        else:
            logger.warning("Lock expired before release: %s", self._lock_key)
        return bool(deleted)


class RedisBucketStore(BucketStorePort):
    """Bucket store keeping each bucket in a Redis hash.

    Read-modify-write sequences are serialised per bucket key with a
    ``DistributedLock``.
    """

    def __init__(
        self,
        redis_client: AsyncRedis,
        *,
        lock_attempts: int = 20,
        lock_retry_interval: float = 0.01,
    ) -> None:
        self._redis = redis_client
        self._lock_attempts = lock_attempts
        self._lock_retry_interval = lock_retry_interval

    @staticmethod
    def _hash_key(key: str) -> str:
        return f"{BUCKET_KEY_PREFIX}:{key}"

    @asynccontextmanager
    async def guard(self, key: str) -> AsyncIterator[None]:
        lock = DistributedLock(self._redis, self._hash_key(key))
        for attempt in range(self._lock_attempts):
            if await lock.acquire():
                break
            if attempt + 1 < self._lock_attempts:
                await asyncio.sleep(self._lock_retry_interval)
        else:
            raise BucketLockTimeout(key)
        try:
            yield
        finally:
            await lock.release()

    async def load(self, key: str, *, for_update: bool = False) -> BucketState | None:
        data = await self._redis.hgetall(self._hash_key(key))
        if not data:
            return None
        return BucketState(tokens=int(data["tokens"]), last_refill=int(data["last_refill"]))

    async def save(self, key: str, state: BucketState) -> None:
        await self._redis.hset(
            self._hash_key(key),
            mapping={"tokens": state.tokens, "last_refill": state.last_refill},
        )

    async def commit(self) -> None:
        return None

    async def rollback(self) -> None:
        return None
