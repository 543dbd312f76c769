"""Token bucket behaviour of RateLimiter against an in-memory store."""
from unittest.mock import AsyncMock

import pytest

from vietadmin.application.rate_limit import (
    CONSUME_ATTEMPTS,
    OPERATION_RATE_LIMITS,
    RATE_LIMITS,
    RateLimiter,
    RateLimitResult,
    RateLimitType,
    get_rate_limit_type,
    make_bucket_key,
)
from vietadmin.domain.ports.rate_limit import BucketConflict, BucketLockTimeout, BucketState


@pytest.fixture
def limiter(bucket_store, clock):
    return RateLimiter(bucket_store, clock=clock)


class TestClassification:
    def test_known_operations_map_to_their_class(self):
        assert get_rate_limit_type("auth.login") is RateLimitType.AUTH
        assert get_rate_limit_type("presets.remove") is RateLimitType.DANGEROUS
        assert get_rate_limit_type("modules.list") is RateLimitType.QUERY
        assert get_rate_limit_type("presets.apply") is RateLimitType.MUTATION

    def test_unknown_operation_defaults_to_mutation(self):
        assert get_rate_limit_type("something.new") is RateLimitType.MUTATION

    def test_every_operation_has_a_configured_class(self):
        for limit_type in OPERATION_RATE_LIMITS.values():
            assert limit_type in RATE_LIMITS

    def test_class_table(self):
        assert RATE_LIMITS[RateLimitType.DANGEROUS].capacity == 10
        assert RATE_LIMITS[RateLimitType.MUTATION].refill_rate == 10
        assert RATE_LIMITS[RateLimitType.QUERY].capacity == 500
        assert RATE_LIMITS[RateLimitType.AUTH].capacity == 5
        assert all(config.refill_interval_ms == 60_000 for config in RATE_LIMITS.values())

    def test_bucket_key_format(self):
        assert make_bucket_key(RateLimitType.AUTH, "global") == "auth:global"

    def test_bucket_key_requires_identifier(self):
        with pytest.raises(ValueError):
            make_bucket_key(RateLimitType.AUTH, "")


def test_retry_after_rounds_up_to_whole_seconds():
    assert RateLimitResult(allowed=False, remaining=0, reset_in=1).retry_after_seconds == 1
    assert RateLimitResult(allowed=False, remaining=0, reset_in=59_001).retry_after_seconds == 60


class TestConsume:
    @pytest.mark.anyio
    async def test_auth_bucket_drains_after_five_requests(self, limiter, bucket_store):
        first = await limiter.consume("global", RateLimitType.AUTH)
        assert first == RateLimitResult(allowed=True, remaining=4, reset_in=60_000)
        assert bucket_store.buckets["auth:global"].tokens == 4

        for expected_remaining in (3, 2, 1, 0):
            result = await limiter.consume("global", RateLimitType.AUTH)
            assert result.allowed is True
            assert result.remaining == expected_remaining

        denied = await limiter.consume("global", RateLimitType.AUTH)
        assert denied.allowed is False
        assert denied.remaining == 0
        assert 0 < denied.reset_in <= 60_000

    @pytest.mark.anyio
    async def test_denial_does_not_write(self, limiter, bucket_store, clock):
        bucket_store.buckets["auth:ip"] = BucketState(tokens=0, last_refill=clock.now)
        result = await limiter.consume("ip", RateLimitType.AUTH)

        assert result.allowed is False
        assert bucket_store.saves == 0

    @pytest.mark.anyio
    async def test_reset_in_counts_down_within_interval(self, limiter, bucket_store, clock):
        bucket_store.buckets["auth:ip"] = BucketState(tokens=0, last_refill=clock.now)
        clock.advance(45_000)

        result = await limiter.consume("ip", RateLimitType.AUTH)

        assert result.reset_in == 15_000

    @pytest.mark.anyio
    async def test_refill_is_credited_in_whole_intervals(self, limiter, bucket_store, clock):
        start = clock.now
        bucket_store.buckets["mutation:ip"] = BucketState(tokens=0, last_refill=start)

        clock.advance(59_999)
        assert (await limiter.consume("ip", RateLimitType.MUTATION)).allowed is False

        clock.advance(1)
        result = await limiter.consume("ip", RateLimitType.MUTATION)
        assert result.allowed is True
        assert result.remaining == 9
        assert bucket_store.buckets["mutation:ip"].last_refill == start + 60_000

    @pytest.mark.anyio
    async def test_refill_clock_stays_put_without_a_full_interval(
        self, limiter, bucket_store, clock
    ):
        start = clock.now
        bucket_store.buckets["query:ip"] = BucketState(tokens=100, last_refill=start)
        clock.advance(30_000)

        await limiter.consume("ip", RateLimitType.QUERY)

        assert bucket_store.buckets["query:ip"] == BucketState(tokens=99, last_refill=start)

    @pytest.mark.anyio
    async def test_tokens_never_exceed_capacity(self, limiter, bucket_store, clock):
        bucket_store.buckets["dangerous:ip"] = BucketState(tokens=9, last_refill=clock.now)
        clock.advance(10 * 60_000)

        result = await limiter.consume("ip", RateLimitType.DANGEROUS)

        assert result.remaining == 9
        assert bucket_store.buckets["dangerous:ip"].tokens == 9

    @pytest.mark.anyio
    async def test_tokens_stay_within_bounds_over_a_long_sequence(
        self, limiter, bucket_store, clock
    ):
        capacity = RATE_LIMITS[RateLimitType.DANGEROUS].capacity
        for step in range(60):
            await limiter.consume("ip", RateLimitType.DANGEROUS)
            clock.advance(7_000 if step % 3 else 61_000)
            tokens = bucket_store.buckets["dangerous:ip"].tokens
            assert 0 <= tokens <= capacity

    @pytest.mark.anyio
    async def test_buckets_are_isolated_per_identifier_and_class(self, limiter, bucket_store):
        await limiter.consume("a", RateLimitType.AUTH)
        await limiter.consume("b", RateLimitType.AUTH)
        await limiter.consume("a", RateLimitType.QUERY)

        assert set(bucket_store.buckets) == {"auth:a", "auth:b", "query:a"}

    @pytest.mark.anyio
    async def test_each_consume_commits(self, limiter, bucket_store):
        await limiter.consume("ip", RateLimitType.QUERY)
        await limiter.consume("ip", RateLimitType.QUERY)
        assert bucket_store.commits == 2

    @pytest.mark.anyio
    async def test_store_failure_rolls_back_and_propagates(self, limiter, bucket_store):
        bucket_store.save = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await limiter.consume("ip", RateLimitType.QUERY)
        assert bucket_store.rollbacks == 1

    @pytest.mark.anyio
    async def test_lock_timeout_denies(self, limiter, bucket_store):
        def failing_guard(key):
            raise BucketLockTimeout(key)

        bucket_store.guard = failing_guard

        result = await limiter.consume("ip", RateLimitType.AUTH)

        assert result.allowed is False
        assert result.reset_in == 60_000
        assert bucket_store.rollbacks == 1

    @pytest.mark.anyio
    async def test_insert_conflict_retries_against_the_winning_row(
        self, limiter, bucket_store, clock
    ):
        original_save = bucket_store.save

        async def save_after_concurrent_insert(key, state):
            # Another request created the bucket between our load and save
            bucket_store.save = original_save
            bucket_store.buckets[key] = BucketState(tokens=4, last_refill=clock.now)
            raise BucketConflict(key)

        bucket_store.save = save_after_concurrent_insert

        result = await limiter.consume("ip", RateLimitType.AUTH)

        assert result == RateLimitResult(allowed=True, remaining=3, reset_in=60_000)
        assert bucket_store.buckets["auth:ip"] == BucketState(tokens=3, last_refill=clock.now)
        assert bucket_store.rollbacks == 1
        assert bucket_store.commits == 1

    @pytest.mark.anyio
    async def test_repeated_conflicts_deny_instead_of_raising(self, limiter, bucket_store):
        bucket_store.save = AsyncMock(side_effect=BucketConflict("auth:ip"))

        result = await limiter.consume("ip", RateLimitType.AUTH)

        assert result.allowed is False
        assert result.reset_in == 60_000
        assert bucket_store.rollbacks == CONSUME_ATTEMPTS


class TestCheck:
    @pytest.mark.anyio
    async def test_absent_bucket_reports_capacity_minus_one(self, limiter, bucket_store):
        result = await limiter.check("ip", RateLimitType.QUERY)

        assert result == RateLimitResult(allowed=True, remaining=499, reset_in=60_000)
        assert bucket_store.buckets == {}

    @pytest.mark.anyio
    async def test_check_applies_virtual_refill_without_writing(
        self, limiter, bucket_store, clock
    ):
        bucket_store.buckets["auth:ip"] = BucketState(tokens=0, last_refill=clock.now)
        clock.advance(120_000)

        result = await limiter.check("ip", RateLimitType.AUTH)

        assert result.allowed is True
        assert result.remaining == 1
        assert bucket_store.saves == 0
        assert bucket_store.buckets["auth:ip"].tokens == 0

    @pytest.mark.anyio
    async def test_check_reports_denial(self, limiter, bucket_store, clock):
        bucket_store.buckets["auth:ip"] = BucketState(tokens=0, last_refill=clock.now)
        clock.advance(20_000)

        result = await limiter.check("ip", RateLimitType.AUTH)

        assert result == RateLimitResult(allowed=False, remaining=0, reset_in=40_000)
