"""Per-key asyncio locks."""

import asyncio
from collections.abc import Hashable
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLock:
    """Serializes coroutines that share a key; different keys run freely.

    Locks are created on demand and dropped once nobody holds or waits for
    them, so the map does not grow with every user ever seen.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
