"""Per-unit locks serialising concurrent moves of the same unit."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class UnitLocks:
    """Lazily created ``asyncio.Lock`` per unit id, shared app-wide."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}

    def get(self, unit_id: int) -> asyncio.Lock:
        lock = self._locks.get(unit_id)
        if lock is None:
            lock = self._locks[unit_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, unit_id: int) -> AsyncIterator[None]:
        async with self.get(unit_id):
            yield

    def __len__(self) -> int:
        return len(self._locks)
