"""Capacity-bound eviction of an agent's memories."""

import logging

from ..exceptions import StoreError
from .store import BaseMemoryStore
from .types import Memory

logger = logging.getLogger(__name__)


def eviction_key(memory: Memory):
    """Least important, least accessed, longest-unaccessed sorts first."""
    return (memory.importance, memory.access_count, memory.last_accessed)


class EvictionPolicy:
    """
    Keeps each agent at or below a fixed number of memories.

    Importance feedback does not trigger a pass; it only changes the
    ordering seen by the next one.
    """

    def __init__(self, store: BaseMemoryStore, capacity: int = 1000):
        self.store = store
        self.capacity = capacity

    def select_victims(self, memories: list[Memory]) -> list[Memory]:
        """Pick the records to delete so that `capacity` remain."""
        excess = len(memories) - self.capacity
        if excess <= 0:
            return []
        return sorted(memories, key=eviction_key)[:excess]

    async def enforce(self, agent_id: str) -> list[str]:
        """
        Trim an agent back to capacity.

        Returns:
            IDs of deleted memories
        """
        try:
            memories = await self.store.get_by_agent(agent_id)
        except StoreError as e:
            logger.warning("Eviction skipped for agent %s: %s", agent_id, e)
            return []

        evicted = []
        for memory in self.select_victims(memories):
            try:
                if await self.store.delete(memory.id):
                    evicted.append(memory.id)
            except StoreError as e:
                logger.warning("Could not evict memory %s: %s", memory.id, e)

        if evicted:
            logger.info(
                "Evicted %d memories for agent %s (capacity %d)",
                len(evicted), agent_id, self.capacity,
            )
        return evicted
