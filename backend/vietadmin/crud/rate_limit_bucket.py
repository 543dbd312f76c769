from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.ports.rate_limit import BucketConflict, BucketState, BucketStorePort
from ..models.rate_limit_bucket import RateLimitBucket


class RateLimitBucketRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_key(self, key: str, *, for_update: bool = False) -> RateLimitBucket | None:
        stmt = select(RateLimitBucket).where(RateLimitBucket.key == key)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, key: str, tokens: int, last_refill: int) -> RateLimitBucket:
        bucket = RateLimitBucket(key=key, tokens=tokens, last_refill=last_refill)
        self.session.add(bucket)
        await self.session.flush()
        return bucket

    async def update(self, bucket: RateLimitBucket, tokens: int, last_refill: int) -> RateLimitBucket:
        bucket.tokens = tokens
        bucket.last_refill = last_refill
        await self.session.flush()
        return bucket


class DatabaseBucketStore(BucketStorePort):
    """Bucket store backed by the ``rate_limit_buckets`` table.

    Consumers load with ``for_update=True`` so the row stays locked until the
    store commits; ``guard`` has nothing extra to do.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = RateLimitBucketRepository(session)
        self._rows: dict[str, RateLimitBucket] = {}

    @asynccontextmanager
    async def guard(self, key: str) -> AsyncIterator[None]:
        yield

    async def load(self, key: str, *, for_update: bool = False) -> BucketState | None:
        bucket = await self._repo.get_by_key(key, for_update=for_update)
        if bucket is None:
            self._rows.pop(key, None)
            return None
        self._rows[key] = bucket
        return BucketState(tokens=bucket.tokens, last_refill=bucket.last_refill)

    async def save(self, key: str, state: BucketState) -> None:
        bucket = self._rows.get(key)
        if bucket is None:
            # FOR UPDATE locks nothing when the row is absent, so two first
            # requests can race to insert the same key
            try:
                self._rows[key] = await self._repo.create(key, state.tokens, state.last_refill)
            except IntegrityError as exc:
                raise BucketConflict(key) from exc
            return
        await self._repo.update(bucket, state.tokens, state.last_refill)

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
        self._rows.clear()
