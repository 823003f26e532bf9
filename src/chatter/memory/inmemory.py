"""
In-memory store implementation.

Useful for testing and embedding. All data is lost when the process ends.
"""

import dataclasses
import logging
from datetime import datetime
from typing import Optional

from .store import BaseMemoryStore
from .types import Memory, Relation

logger = logging.getLogger(__name__)


def _copy(memory: Memory) -> Memory:
    return dataclasses.replace(memory, tags=list(memory.tags))


def _by_importance(memory: Memory):
    return (memory.importance, memory.last_accessed)


class InMemoryStore(BaseMemoryStore):
    """
    Dict-backed store with the same ordering rules as SQLiteMemoryStore.

    Records are copied on the way in and out, so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._memories: dict[str, Memory] = {}
        self._relations: dict[str, Relation] = {}

    async def get_by_agent(self, agent_id: str) -> list[Memory]:
        found = [m for m in self._memories.values() if m.agent_id == agent_id]
        found.sort(key=_by_importance, reverse=True)
        return [_copy(m) for m in found]

    async def get_by_conversation(self, conversation_id: str) -> list[Memory]:
        found = [m for m in self._memories.values() if m.conversation_id == conversation_id]
        found.sort(key=lambda m: m.created_at)
        return [_copy(m) for m in found]

    async def get_by_id(self, memory_id: str) -> Optional[Memory]:
        memory = self._memories.get(memory_id)
        return _copy(memory) if memory else None

    async def insert(self, memory: Memory) -> bool:
        if memory.id in self._memories:
            logger.debug("Duplicate memory id: %s", memory.id)
            return False
        self._memories[memory.id] = _copy(memory)
        return True

    async def update(self, memory: Memory) -> bool:
        if memory.id not in self._memories:
            return False
        self._memories[memory.id] = _copy(memory)
        return True

    async def delete(self, memory_id: str) -> bool:
        return self._memories.pop(memory_id, None) is not None

    async def delete_by_agent(self, agent_id: str) -> int:
        ids = [m.id for m in self._memories.values() if m.agent_id == agent_id]
        for memory_id in ids:
            del self._memories[memory_id]
        return len(ids)

    async def search_by_text(self, agent_id: str, query: str) -> list[Memory]:
        found = [
            m for m in self._memories.values()
            if m.agent_id == agent_id and m.mentions(query)
        ]
        found.sort(key=_by_importance, reverse=True)
        return [_copy(m) for m in found]

    async def top_by_importance(self, agent_id: str, limit: int) -> list[Memory]:
        return (await self.get_by_agent(agent_id))[:limit]

    async def update_access(self, memory_id: str, accessed_at: datetime) -> bool:
        memory = self._memories.get(memory_id)
        if memory is None:
            return False
        memory.access(accessed_at)
        return True

    async def count(self, agent_id: str) -> int:
        return sum(1 for m in self._memories.values() if m.agent_id == agent_id)

    async def insert_relation(self, relation: Relation) -> bool:
        if relation.id in self._relations:
            return False
        self._relations[relation.id] = dataclasses.replace(relation)
        return True

    async def get_relations(self, memory_id: str) -> list[Relation]:
        found = [
            r for r in self._relations.values()
            if r.source_id == memory_id or r.target_id == memory_id
        ]
        found.sort(key=lambda r: r.created_at)
        return [dataclasses.replace(r) for r in found]

    async def delete_relation(self, relation_id: str) -> bool:
        return self._relations.pop(relation_id, None) is not None

    def __repr__(self) -> str:
        return f"InMemoryStore(memories={len(self._memories)}, relations={len(self._relations)})"
