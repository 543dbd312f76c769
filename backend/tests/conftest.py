"""Shared test fixtures and configuration."""
import os

# Settings are read lazily from the environment on first access
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from collections.abc import AsyncIterator  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from vietadmin.domain.ports.rate_limit import BucketState  # noqa: E402
from vietadmin.models import Base  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


class InMemoryBucketStore:
    """Dict-backed bucket store; counts writes so tests can assert on them."""

    def __init__(self) -> None:
        self.buckets: dict[str, BucketState] = {}
        self.saves = 0
        self.commits = 0
        self.rollbacks = 0

    @asynccontextmanager
    async def guard(self, key: str) -> AsyncIterator[None]:
        yield

    async def load(self, key: str, *, for_update: bool = False) -> BucketState | None:
        return self.buckets.get(key)

    async def save(self, key: str, state: BucketState) -> None:
        self.saves += 1
        self.buckets[key] = state

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


@pytest.fixture
def bucket_store() -> InMemoryBucketStore:
    return InMemoryBucketStore()


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
