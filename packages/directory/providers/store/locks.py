"""Per-key asyncio locks for the directory stores."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict


class KeyedLocks:
    """
    One asyncio.Lock per key, kept only while someone holds or waits on it.

    Entries are dropped when the last user leaves, so the map stays bounded
    by the number of keys in use rather than every key ever seen.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncGenerator[None, None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
