"""Memory manager for orchestrating memory operations."""

import logging
from collections import Counter
from typing import Optional

from ..config import MemoryConfig
from ..exceptions import StoreError
from ..storage.conversations import ChatMessage
from .eviction import EvictionPolicy
from .locks import AgentLocks
from .relations import RelationGraph
from .retriever import MemoryRetriever
from .scorer import MemoryScorer
from .store import BaseMemoryStore
from .types import Memory, MemoryStatistics, Relation

logger = logging.getLogger(__name__)

FEEDBACK_STEP = 0.1
IMPORTANT_THRESHOLD = 0.7
RECENT_DAYS = 7
SUMMARY_SIZE = 5


class MemoryManager:
    """
    High-level manager for one store's agent memories.

    Provides unified API for:
    - Turning messages into scored, tagged, linked memories
    - Keeping each agent under capacity
    - Retrieving relevant memories
    - Applying importance feedback

    Store failures are logged and degrade to "nothing happened".
    """

    def __init__(
        self,
        store: BaseMemoryStore,
        config: Optional[MemoryConfig] = None,
        scorer: Optional[MemoryScorer] = None,
    ):
        self.store = store
        self.config = config or MemoryConfig()
        self.locks = AgentLocks()
        self.scorer = scorer or MemoryScorer(self.config.max_content_length)
        self.relations = RelationGraph(store, self.config.similarity_threshold)
        self.eviction = EvictionPolicy(store, self.config.max_memories_per_agent)
        self.retriever = MemoryRetriever(
            store,
            locks=self.locks,
            conversation_limit=self.config.conversation_limit,
            relevant_limit=self.config.relevant_limit,
        )

    # ==================== Store Operations ====================

    async def create_memory_from_message(
        self,
        agent_id: str,
        message: ChatMessage,
        conversation_id: Optional[str] = None,
    ) -> Optional[Memory]:
        """
        Create a memory from a chat message if it is important enough.

        Args:
            agent_id: Owning agent
            message: Source message
            conversation_id: Conversation the message belongs to

        Returns:
            Created memory, or None if the message was not important
            enough or could not be stored
        """
        importance = self.scorer.compute_importance(message.content)
        if importance < self.config.importance_threshold:
            return None

        memory = Memory.create(
            agent_id=agent_id,
            content=self.scorer.extract_key_content(message.content),
            memory_type=self.scorer.classify(message.content),
            importance=importance,
            conversation_id=conversation_id or message.conversation_id,
            source_message_id=message.id,
            tags=self.scorer.extract_tags(message.content),
        )

        async with self.locks.for_agent(agent_id):
            try:
                if not await self.store.insert(memory):
                    return None
            except StoreError as e:
                logger.warning("Could not store memory for agent %s: %s", agent_id, e)
                return None

            try:
                existing = await self.store.get_by_agent(agent_id)
            except StoreError as e:
                logger.warning("Skipping relation linking for %s: %s", memory.id, e)
                existing = []

            await self.relations.on_memory_created(memory, existing)
            await self.eviction.enforce(agent_id)

        logger.debug(
            "Created %s memory %s (importance=%.2f)",
            memory.type.value, memory.id, memory.importance,
        )
        return memory

    # ==================== Retrieve Operations ====================

    async def retrieve_relevant_memories(
        self,
        agent_id: str,
        query: str,
        limit: int = 10,
    ) -> list[Memory]:
        return await self.retriever.retrieve_relevant(agent_id, query, limit)

    async def get_memory(self, memory_id: str) -> Optional[Memory]:
        try:
            return await self.store.get_by_id(memory_id)
        except StoreError as e:
            logger.warning("Could not load memory %s: %s", memory_id, e)
            return None

    async def get_relations(self, memory_id: str) -> list[Relation]:
        return await self.relations.relations_for(memory_id)

    async def list_memories(self, agent_id: str) -> list[Memory]:
        try:
            return await self.store.get_by_agent(agent_id)
        except StoreError as e:
            logger.warning("Could not list memories for agent %s: %s", agent_id, e)
            return []

    async def get_conversation_memory_summary(
        self,
        agent_id: str,
        conversation_id: str,
    ) -> str:
        """
        Summarize the most important memories of a conversation.

        Returns:
            Header plus up to five memories with their scores, or ""
        """
        try:
            memories = await self.store.get_by_conversation(conversation_id)
        except StoreError as e:
            logger.warning("Could not load conversation %s memories: %s", conversation_id, e)
            return ""

        if not memories:
            return ""

        important = sorted(
            (m for m in memories if m.importance > self.config.importance_threshold),
            key=lambda m: m.importance,
            reverse=True,
        )[:SUMMARY_SIZE]

        lines = ["Memory summary:"]
        for mem in important:
            lines.append(f"- {mem.content} (importance: {mem.importance:.2f})")
        return "\n".join(lines) + "\n"

    async def get_stats(self, agent_id: str) -> MemoryStatistics:
        """
        Get memory statistics for an agent.

        Returns:
            Statistics, all zero when nothing could be read
        """
        memories = await self.list_memories(agent_id)
        if not memories:
            return MemoryStatistics()

        return MemoryStatistics(
            total=len(memories),
            important=sum(1 for m in memories if m.importance > IMPORTANT_THRESHOLD),
            recent=sum(1 for m in memories if m.age_days < RECENT_DAYS),
            average_importance=sum(m.importance for m in memories) / len(memories),
            most_accessed=max(memories, key=lambda m: m.access_count),
            type_distribution=dict(Counter(m.type for m in memories)),
        )

    # ==================== Management Operations ====================

    async def update_memory_importance(
        self,
        memory_id: str,
        feedback: float,
    ) -> Optional[Memory]:
        """
        Nudge a memory's importance by feedback * 0.1.

        Feedback outside [-1, 1] is clamped. No eviction pass runs;
        the new score only matters to the next one.

        Returns:
            The updated memory, or None if it was not found or not saved
        """
        feedback = max(-1.0, min(1.0, feedback))

        memory = await self.get_memory(memory_id)
        if memory is None:
            return None

        async with self.locks.for_agent(memory.agent_id):
            memory = await self.get_memory(memory_id)
            if memory is None:
                return None

            memory.update_importance(feedback * FEEDBACK_STEP)
            try:
                if not await self.store.update(memory):
                    return None
            except StoreError as e:
                logger.warning("Could not update importance of %s: %s", memory_id, e)
                return None

        return memory

    async def forget(self, memory_id: str) -> bool:
        """
        Forget (delete) a memory.

        Relations that reference it are kept.
        """
        try:
            return await self.store.delete(memory_id)
        except StoreError as e:
            logger.warning("Could not delete memory %s: %s", memory_id, e)
            return False

    async def forget_agent(self, agent_id: str) -> int:
        async with self.locks.for_agent(agent_id):
            try:
                return await self.store.delete_by_agent(agent_id)
            except StoreError as e:
                logger.warning("Could not delete memories of agent %s: %s", agent_id, e)
                return 0

    def __repr__(self) -> str:
        return f"MemoryManager(store={self.store!r})"
