"""Per-agent exclusive access for read-modify-write sequences."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class AgentLocks:
    """
    Lazily created asyncio.Lock per agent id.

    Stores give no cross-call atomicity, so ingestion + eviction and
    access-stat updates for one agent must not interleave. A lock is
    dropped once no task holds or waits for it.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def for_agent(self, agent_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(agent_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[agent_id] = lock
        self._users[agent_id] = self._users.get(agent_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._users[agent_id] -= 1
            if self._users[agent_id] == 0:
                del self._users[agent_id]
                del self._locks[agent_id]

    def __len__(self) -> int:
        return len(self._locks)
