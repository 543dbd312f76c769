import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from vietadmin.application.rate_limit import RateLimiter, RateLimitType
from vietadmin.crud.rate_limit_bucket import DatabaseBucketStore
from vietadmin.domain.ports.rate_limit import BucketState
from vietadmin.models import Base, RateLimitBucket


@pytest.mark.anyio
async def test_first_consume_inserts_row(session, clock):
    limiter = RateLimiter(DatabaseBucketStore(session), clock=clock)

    result = await limiter.consume("203.0.113.7", RateLimitType.AUTH)

    assert result.allowed is True
    assert result.remaining == 4
    bucket = (
        await session.execute(
            select(RateLimitBucket).where(RateLimitBucket.key == "auth:203.0.113.7")
        )
    ).scalar_one()
    assert bucket.tokens == 4
    assert bucket.last_refill == clock.now


@pytest.mark.anyio
async def test_consumed_tokens_survive_a_new_session(session_factory, clock):
    async with session_factory() as first:
        limiter = RateLimiter(DatabaseBucketStore(first), clock=clock)
        for _ in range(5):
            await limiter.consume("ip", RateLimitType.AUTH)

    async with session_factory() as second:
        limiter = RateLimiter(DatabaseBucketStore(second), clock=clock)
        denied = await limiter.consume("ip", RateLimitType.AUTH)
        checked = await limiter.check("ip", RateLimitType.AUTH)

    assert denied.allowed is False
    assert checked.allowed is False


@pytest.mark.anyio
async def test_store_updates_existing_row(session):
    store = DatabaseBucketStore(session)
    await store.save("query:ip", BucketState(tokens=10, last_refill=1))
    await store.commit()

    loaded = await store.load("query:ip", for_update=True)
    await store.save("query:ip", BucketState(tokens=9, last_refill=2))
    await store.commit()

    assert loaded == BucketState(tokens=10, last_refill=1)
    rows = (await session.execute(select(RateLimitBucket))).scalars().all()
    assert len(rows) == 1
    assert (rows[0].tokens, rows[0].last_refill) == (9, 2)


@pytest.mark.anyio
async def test_check_does_not_create_rows(session, clock):
    limiter = RateLimiter(DatabaseBucketStore(session), clock=clock)

    await limiter.check("ip", RateLimitType.QUERY)

    rows = (await session.execute(select(RateLimitBucket))).scalars().all()
    assert rows == []


class InterleavingBucketStore(DatabaseBucketStore):
    """Lets another request run between this request's load and its insert."""

    def __init__(self, session, competing_request):
        super().__init__(session)
        self._competing_request = competing_request

    async def save(self, key, state):
        competing_request, self._competing_request = self._competing_request, None
        if competing_request is not None:
            await competing_request()
        await super().save(key, state)


@pytest.fixture
async def file_session_factory(tmp_path):
    # Separate connections are needed to interleave two transactions
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'buckets.db'}")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.anyio
async def test_concurrent_first_requests_share_one_bucket(file_session_factory, clock):
    competing_results = []

    async def competing_request():
        async with file_session_factory() as other:
            limiter = RateLimiter(DatabaseBucketStore(other), clock=clock)
            competing_results.append(await limiter.consume("1.2.3.4", RateLimitType.AUTH))

    async with file_session_factory() as session:
        limiter = RateLimiter(InterleavingBucketStore(session, competing_request), clock=clock)
        result = await limiter.consume("1.2.3.4", RateLimitType.AUTH)
        rows = (await session.execute(select(RateLimitBucket))).scalars().all()

    assert competing_results[0].remaining == 4
    assert result.allowed is True
    assert result.remaining == 3
    assert len(rows) == 1
    assert rows[0].tokens == 3
