"""Concurrency helpers for serialising work on the same key."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable

import anyio


class KeyedLock:
    """One ``anyio.Lock`` per key, dropped again once nobody holds or waits on it.

    Only coordinates callers inside this process; concurrent workers or hosts
    still race and rely on the store's own constraints.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, anyio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = anyio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


# Collapses a double submit from the same visitor into sequential attempts.
sign_locks = KeyedLock()
