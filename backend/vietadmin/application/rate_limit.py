"""Token bucket admission control.

Each ``(class, identifier)`` pair owns one bucket holding at most
``capacity`` tokens. Buckets refill lazily in whole intervals: a caller that
drained its bucket waits for the next interval boundary, not a prorated
fraction of it.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Final

from ..domain.ports.rate_limit import (
    BucketConflict,
    BucketLockTimeout,
    BucketState,
    BucketStorePort,
)

logger = logging.getLogger("vietadmin.ratelimit")

RATE_LIMIT_MESSAGE = "Too many requests, try again later"
CONSUME_ATTEMPTS = 2


class RateLimitType(str, Enum):
    DANGEROUS = "dangerous"
    MUTATION = "mutation"
    QUERY = "query"
    AUTH = "auth"


@dataclass(frozen=True)
class RateLimitConfig:
    capacity: int
    refill_rate: int
    refill_interval_ms: int


RATE_LIMITS: Final[dict[RateLimitType, RateLimitConfig]] = {
    RateLimitType.DANGEROUS: RateLimitConfig(capacity=10, refill_rate=1, refill_interval_ms=60_000),
    RateLimitType.MUTATION: RateLimitConfig(capacity=100, refill_rate=10, refill_interval_ms=60_000),
    RateLimitType.QUERY: RateLimitConfig(capacity=500, refill_rate=50, refill_interval_ms=60_000),
    RateLimitType.AUTH: RateLimitConfig(capacity=5, refill_rate=1, refill_interval_ms=60_000),
}

# Every rate-limited operation is listed here with its class.
OPERATION_RATE_LIMITS: Final[dict[str, RateLimitType]] = {
    # admin auth
    "auth.login": RateLimitType.AUTH,
    "auth.session": RateLimitType.QUERY,
    "auth.logout": RateLimitType.MUTATION,
    "permissions.check": RateLimitType.QUERY,
    # module registry
    "modules.list": RateLimitType.QUERY,
    "modules.get": RateLimitType.QUERY,
    "modules.dependents": RateLimitType.QUERY,
    "modules.create": RateLimitType.MUTATION,
    "modules.update": RateLimitType.MUTATION,
    "modules.toggle": RateLimitType.MUTATION,
    "modules.remove": RateLimitType.DANGEROUS,
    # per-module fields, features and settings
    "module_fields.list": RateLimitType.QUERY,
    "module_fields.create": RateLimitType.MUTATION,
    "module_fields.update": RateLimitType.MUTATION,
    "module_fields.remove": RateLimitType.DANGEROUS,
    "module_features.list": RateLimitType.QUERY,
    "module_features.create": RateLimitType.MUTATION,
    "module_features.toggle": RateLimitType.MUTATION,
    "module_features.remove": RateLimitType.DANGEROUS,
    "module_settings.list": RateLimitType.QUERY,
    "module_settings.set": RateLimitType.MUTATION,
    "module_settings.remove": RateLimitType.DANGEROUS,
    # presets
    "presets.list": RateLimitType.QUERY,
    "presets.get": RateLimitType.QUERY,
    "presets.create": RateLimitType.MUTATION,
    "presets.update": RateLimitType.MUTATION,
    "presets.apply": RateLimitType.MUTATION,
    "presets.create_from_current": RateLimitType.MUTATION,
    "presets.duplicate": RateLimitType.MUTATION,
    "presets.remove": RateLimitType.DANGEROUS,
    # roles
    "roles.list": RateLimitType.QUERY,
    "roles.get": RateLimitType.QUERY,
    "roles.create": RateLimitType.MUTATION,
    "roles.update": RateLimitType.MUTATION,
    "roles.remove": RateLimitType.DANGEROUS,
    # maintenance
    "rate_limits.inspect": RateLimitType.QUERY,
}


def get_rate_limit_type(operation: str) -> RateLimitType:
    """Return the class registered for ``operation``, ``mutation`` if unknown."""
    return OPERATION_RATE_LIMITS.get(operation, RateLimitType.MUTATION)


def make_bucket_key(limit_type: RateLimitType, identifier: str) -> str:
    if not identifier:
        raise ValueError("identifier is required for rate limiting")
    return f"{limit_type.value}:{identifier}"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in: int

    @property
    def retry_after_seconds(self) -> int:
        return max(1, -(-self.reset_in // 1000))


@dataclass(frozen=True)
class _Refill:
    tokens: int
    refill_count: int
    time_passed: int


def _refill(state: BucketState, config: RateLimitConfig, now: int) -> _Refill:
    time_passed = max(0, now - state.last_refill)
    refill_count = time_passed // config.refill_interval_ms
    tokens = min(config.capacity, state.tokens + refill_count * config.refill_rate)
    return _Refill(tokens=tokens, refill_count=refill_count, time_passed=time_passed)


def _denied(config: RateLimitConfig, time_passed: int) -> RateLimitResult:
    reset_in = config.refill_interval_ms - (time_passed % config.refill_interval_ms)
    return RateLimitResult(allowed=False, remaining=0, reset_in=reset_in)


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    """Checks and consumes tokens from buckets kept in a ``BucketStorePort``."""

    def __init__(self, store: BucketStorePort, clock: Callable[[], int] = _now_ms) -> None:
        self._store = store
        self._clock = clock

    async def check(self, identifier: str, limit_type: RateLimitType) -> RateLimitResult:
        """Report the bucket state after a virtual refill without persisting it."""
        config = RATE_LIMITS[limit_type]
        key = make_bucket_key(limit_type, identifier)
        state = await self._store.load(key)
        if state is None:
            return RateLimitResult(
                allowed=True,
                remaining=config.capacity - 1,
                reset_in=config.refill_interval_ms,
            )

        refill = _refill(state, config, self._clock())
        if refill.tokens <= 0:
            return _denied(config, refill.time_passed)
        return RateLimitResult(
            allowed=True,
            remaining=refill.tokens - 1,
            reset_in=config.refill_interval_ms,
        )

    async def consume(self, identifier: str, limit_type: RateLimitType) -> RateLimitResult:
        """Take one token if available and persist the new bucket state.

        Never raises for a denial; the caller decides how to reject.
        """
        config = RATE_LIMITS[limit_type]
        key = make_bucket_key(limit_type, identifier)
        for attempt in range(1, CONSUME_ATTEMPTS + 1):
            try:
                async with self._store.guard(key):
                    result = await self._consume_locked(key, config)
                await self._store.commit()
                break
            except BucketLockTimeout:
                await self._store.rollback()
                logger.warning("rate_limit_lock_timeout key=%s", key)
                return self._contended(config)
            except BucketConflict:
                # The row exists now; the next attempt loads and locks it
                await self._store.rollback()
                logger.info("rate_limit_bucket_conflict key=%s attempt=%d", key, attempt)
            except Exception:
                await self._store.rollback()
                raise
        else:
            logger.warning("rate_limit_conflict_retries_exhausted key=%s", key)
            return self._contended(config)

        if not result.allowed:
            logger.info(
                "rate_limit_denied key=%s reset_in_ms=%d", key, result.reset_in
            )
        return result

    @staticmethod
    def _contended(config: RateLimitConfig) -> RateLimitResult:
        return RateLimitResult(allowed=False, remaining=0, reset_in=config.refill_interval_ms)

    async def _consume_locked(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = self._clock()
        state = await self._store.load(key, for_update=True)
        if state is None:
            remaining = config.capacity - 1
            await self._store.save(key, BucketState(tokens=remaining, last_refill=now))
            return RateLimitResult(
                allowed=True, remaining=remaining, reset_in=config.refill_interval_ms
            )

        refill = _refill(state, config, now)
        if refill.tokens <= 0:
            return _denied(config, refill.time_passed)

        remaining = refill.tokens - 1
        # Only move the refill clock when at least one interval was credited
        last_refill = now if refill.refill_count > 0 else state.last_refill
        await self._store.save(key, BucketState(tokens=remaining, last_refill=last_refill))
        return RateLimitResult(
            allowed=True, remaining=remaining, reset_in=config.refill_interval_ms
        )
