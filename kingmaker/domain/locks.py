"""Per-key serialization for asyncio services."""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Hashable


class KeyedLocks:
    """Hand out one ``asyncio.Lock`` per key.

    Operations on the same key run one at a time while operations on
    different keys never wait on each other. ``hold`` acquires several keys
    in a stable order so two callers locking the same pair cannot deadlock.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}

    def lock(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        ordered = sorted(set(keys), key=repr)
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self.lock(key))
            yield
