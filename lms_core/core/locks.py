# lms_core/core/locks.py
"""In-process keyed locks used to serialize writers of the same module."""
import asyncio
import contextlib
from typing import AsyncIterator, Dict, Hashable


class KeyedLockRegistry:
    """Hands out one asyncio.Lock per key; idle locks are dropped on release."""

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._waiters: Dict[Hashable, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


module_locks = KeyedLockRegistry()
