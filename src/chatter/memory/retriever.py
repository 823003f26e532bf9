"""Memory retriever for lexical search and ranking."""

import logging
from typing import Optional

from ..exceptions import StoreError
from .locks import AgentLocks
from .similarity import relevance
from .store import BaseMemoryStore
from .types import Memory, utcnow

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "Context from earlier memories:"


def dedupe(memories: list[Memory]) -> list[Memory]:
    """Remove duplicates by ID, keeping the first occurrence."""
    seen = set()
    unique = []
    for memory in memories:
        if memory.id not in seen:
            seen.add(memory.id)
            unique.append(memory)
    return unique


class MemoryRetriever:
    """
    Retrieves relevant memories for a query.

    Merges a keyword search with the agent's most important memories,
    ranks by lexical relevance, and records the access. Can be extended
    with embedding-based search.
    """

    def __init__(
        self,
        store: BaseMemoryStore,
        locks: Optional[AgentLocks] = None,
        conversation_limit: int = 10,
        relevant_limit: int = 5,
    ):
        self.store = store
        self.locks = locks or AgentLocks()
        self.conversation_limit = conversation_limit
        self.relevant_limit = relevant_limit

    async def _safe(self, operation: str, coro) -> list[Memory]:
        try:
            return await coro
        except StoreError as e:
            logger.warning("Memory %s failed: %s", operation, e)
            return []

    async def retrieve_relevant(
        self,
        agent_id: str,
        query: str,
        limit: int = 10,
    ) -> list[Memory]:
        """
        Retrieve memories relevant to the query.

        Args:
            agent_id: Agent whose memories are searched
            query: Current user message or search text
            limit: Maximum memories to return

        Returns:
            At most `limit` unique memories, most relevant first. Each
            returned memory has had its access recorded.
        """
        if limit <= 0:
            return []

        search_results = await self._safe(
            "search", self.store.search_by_text(agent_id, query)
        )
        top_results = await self._safe(
            "top_by_importance", self.store.top_by_importance(agent_id, limit)
        )

        candidates = dedupe(search_results + top_results)
        candidates.sort(
            key=lambda m: (relevance(m, query), m.importance, m.access_count),
            reverse=True,
        )
        selected = candidates[:limit]

        # Record access
        now = utcnow()
        async with self.locks.for_agent(agent_id):
            for memory in selected:
                try:
                    if await self.store.update_access(memory.id, now):
                        memory.access(now)
                except StoreError as e:
                    logger.warning("Could not record access for %s: %s", memory.id, e)

        return selected

    async def contextual_memories(
        self,
        agent_id: str,
        conversation_id: str,
        query: str,
    ) -> list[Memory]:
        """
        Memories from this conversation plus the best global matches.

        Returns:
            Up to `conversation_limit` memories, most important first
        """
        relevant = await self.retrieve_relevant(agent_id, query, self.relevant_limit)
        conversation = await self._safe(
            "get_by_conversation", self.store.get_by_conversation(conversation_id)
        )

        memories = dedupe(relevant + conversation)
        memories.sort(
            key=lambda m: (m.importance, m.access_count, m.last_accessed),
            reverse=True,
        )
        return memories[:self.conversation_limit]

    async def enhanced_context_text(
        self,
        agent_id: str,
        conversation_id: str,
        query: str,
    ) -> str:
        """
        Get formatted memory context for injection into prompts.

        Returns:
            Formatted context string, or "" when nothing is remembered
        """
        memories = await self.contextual_memories(agent_id, conversation_id, query)
        return render_memories(memories)


def render_memories(memories: list[Memory]) -> str:
    if not memories:
        return ""

    lines = [CONTEXT_HEADER]
    for mem in memories:
        lines.append(f"- {mem.content}")
        if mem.tags:
            lines.append(f"  Tags: {', '.join(mem.tags)}")

    return "\n".join(lines) + "\n"
