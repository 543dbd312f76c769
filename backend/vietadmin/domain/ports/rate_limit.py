from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class BucketState:
    tokens: int
    last_refill: int


class BucketLockTimeout(Exception):
    """Raised when a bucket could not be locked for a read-modify-write."""


class BucketConflict(Exception):
    """Raised by ``save`` when another writer created the same bucket first."""


class BucketStorePort(Protocol):
    def guard(self, key: str) -> AbstractAsyncContextManager[None]:
        ...

    async def load(self, key: str, *, for_update: bool = False) -> BucketState | None:
        ...

    async def save(self, key: str, state: BucketState) -> None:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
