"""Tests for the Redis client lifecycle and the Redis-backed bucket store."""

from unittest.mock import AsyncMock

import pytest
from redis import RedisError

from vietadmin.application.rate_limit import RateLimiter, RateLimitType
from vietadmin.domain.ports.rate_limit import BucketLockTimeout, BucketState
from vietadmin.infra import redis


@pytest.fixture
def redis_client() -> AsyncMock:
    client = AsyncMock()
    client.set.return_value = True
    client.eval.return_value = 1
    client.hgetall.return_value = {}
    return client


@pytest.mark.anyio
async def test_get_redis_returns_the_same_client_until_closed() -> None:
    await redis.close_redis()
    try:
        first = redis.get_redis("redis://localhost:6379/0")
        second = redis.get_redis("redis://localhost:6379/0")
        assert first is second

        await redis.close_redis()
        assert redis._client is None

        third = redis.get_redis("redis://localhost:6379/0")
        assert third is not first
    finally:
        await redis.close_redis()


@pytest.mark.anyio
async def test_close_without_client_is_safe() -> None:
    await redis.close_redis()
    await redis.close_redis()
    assert redis._client is None


def test_client_requires_url() -> None:
    with pytest.raises(ValueError, match="REDIS_URL must be set"):
        redis.get_async_redis_client("")


@pytest.mark.anyio
async def test_lock_acquire_and_release(redis_client: AsyncMock) -> None:
    lock = redis.DistributedLock(redis_client, "ratelimit:auth:ip", ttl_ms=500)

    assert await lock.acquire() is True
    token = redis_client.set.await_args.args[1]
    redis_client.set.assert_awaited_once_with(
        "lock:ratelimit:auth:ip", token, nx=True, px=500
    )
    assert await lock.release() is True
    redis_client.eval.assert_awaited_once_with(
        redis.RELEASE_SCRIPT, 1, "lock:ratelimit:auth:ip", token
    )
    redis_client.delete.assert_not_awaited()


@pytest.mark.anyio
async def test_each_lock_holder_stores_its_own_token(redis_client: AsyncMock) -> None:
    await redis.DistributedLock(redis_client, "key").acquire()
    await redis.DistributedLock(redis_client, "key").acquire()

    first, second = (call.args[1] for call in redis_client.set.await_args_list)
    assert first != second


@pytest.mark.anyio
async def test_release_after_expiry_leaves_new_holder_alone(redis_client: AsyncMock) -> None:
    lock = redis.DistributedLock(redis_client, "ratelimit:auth:ip")
    await lock.acquire()
    # The TTL elapsed and another worker now owns the key
    redis_client.eval.return_value = 0

    assert await lock.release() is False
    assert lock.acquired is False
    redis_client.delete.assert_not_awaited()


@pytest.mark.anyio
async def test_lock_release_without_acquire_is_noop(redis_client: AsyncMock) -> None:
    lock = redis.DistributedLock(redis_client, "key")

    assert await lock.release() is False
    redis_client.eval.assert_not_awaited()


@pytest.mark.anyio
async def test_lock_treats_redis_errors_as_not_acquired(redis_client: AsyncMock) -> None:
    redis_client.set.side_effect = RedisError("connection refused")
    lock = redis.DistributedLock(redis_client, "key")

    assert await lock.acquire() is False
    assert lock.acquired is False


@pytest.mark.anyio
async def test_store_load_missing_bucket(redis_client: AsyncMock) -> None:
    store = redis.RedisBucketStore(redis_client)

    assert await store.load("auth:ip") is None
    redis_client.hgetall.assert_awaited_once_with("ratelimit:auth:ip")


@pytest.mark.anyio
async def test_store_round_trips_hash_fields(redis_client: AsyncMock) -> None:
    store = redis.RedisBucketStore(redis_client)
    redis_client.hgetall.return_value = {"tokens": "3", "last_refill": "1700000000000"}

    state = await store.load("auth:ip")
    await store.save("auth:ip", BucketState(tokens=2, last_refill=1_700_000_060_000))

    assert state == BucketState(tokens=3, last_refill=1_700_000_000_000)
    redis_client.hset.assert_awaited_once_with(
        "ratelimit:auth:ip",
        mapping={"tokens": 2, "last_refill": 1_700_000_060_000},
    )


@pytest.mark.anyio
async def test_guard_times_out_when_lock_is_held(redis_client: AsyncMock) -> None:
    redis_client.set.return_value = None
    store = redis.RedisBucketStore(redis_client, lock_attempts=3, lock_retry_interval=0)

    with pytest.raises(BucketLockTimeout):
        async with store.guard("auth:ip"):
            pass
    assert redis_client.set.await_count == 3
    redis_client.eval.assert_not_awaited()


@pytest.mark.anyio
async def test_limiter_over_redis_store(redis_client: AsyncMock, clock) -> None:
    limiter = RateLimiter(redis.RedisBucketStore(redis_client), clock=clock)

    result = await limiter.consume("ip", RateLimitType.AUTH)

    assert result.allowed is True
    assert result.remaining == 4
    redis_client.hset.assert_awaited_once_with(
        "ratelimit:auth:ip",
        mapping={"tokens": 4, "last_refill": clock.now},
    )
    assert redis_client.eval.await_args.args[2] == "lock:ratelimit:auth:ip"


@pytest.mark.anyio
async def test_limiter_denies_when_redis_lock_is_contended(
    redis_client: AsyncMock, clock
) -> None:
    redis_client.set.return_value = None
    store = redis.RedisBucketStore(redis_client, lock_attempts=2, lock_retry_interval=0)
    limiter = RateLimiter(store, clock=clock)

    result = await limiter.consume("ip", RateLimitType.DANGEROUS)

    assert result.allowed is False
    redis_client.hset.assert_not_awaited()
