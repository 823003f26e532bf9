import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest

from chatter.exceptions import StoreError
from chatter.memory.inmemory import InMemoryStore
from chatter.memory.types import Memory, MemoryType


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FailingStore(InMemoryStore):
    """Store whose backend is down for the named operations."""

    def __init__(self, failing: set[str]):
        super().__init__()
        self.failing = failing

    def _check(self, operation: str):
        if operation in self.failing:
            raise StoreError(operation, "backend unavailable")

    async def insert(self, memory):
        self._check("insert")
        return await super().insert(memory)

    async def update(self, memory):
        self._check("update")
        return await super().update(memory)

    async def get_by_agent(self, agent_id):
        self._check("get_by_agent")
        return await super().get_by_agent(agent_id)

    async def get_by_conversation(self, conversation_id):
        self._check("get_by_conversation")
        return await super().get_by_conversation(conversation_id)

    async def get_by_id(self, memory_id):
        self._check("get_by_id")
        return await super().get_by_id(memory_id)

    async def search_by_text(self, agent_id, query):
        self._check("search_by_text")
        return await super().search_by_text(agent_id, query)

    async def top_by_importance(self, agent_id, limit):
        self._check("top_by_importance")
        return await super().top_by_importance(agent_id, limit)

    async def update_access(self, memory_id, accessed_at):
        self._check("update_access")
        return await super().update_access(memory_id, accessed_at)

    async def delete(self, memory_id):
        self._check("delete")
        return await super().delete(memory_id)

    async def insert_relation(self, relation):
        self._check("insert_relation")
        return await super().insert_relation(relation)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def make_memory():
    """Build a memory with explicit ranking fields."""
    counter = {"n": 0}

    def _make(
        content: str = "something worth keeping",
        agent_id: str = "agent-1",
        importance: float = 0.5,
        access_count: int = 0,
        accessed_minutes: int = 0,
        conversation_id: str = "conv-1",
        tags=None,
        memory_type: MemoryType = MemoryType.CONVERSATION,
    ) -> Memory:
        counter["n"] += 1
        when = BASE_TIME + timedelta(minutes=accessed_minutes)
        return Memory(
            id=f"memory_{counter['n']:05d}",
            agent_id=agent_id,
            content=content,
            type=memory_type,
            importance=importance,
            access_count=access_count,
            conversation_id=conversation_id,
            last_accessed=when,
            created_at=when,
            updated_at=when,
            tags=list(tags or []),
        )

    return _make
