"""Typed, weighted edges between memories."""

import logging
from typing import Iterable

from ..exceptions import StoreError
from .similarity import similarity
from .store import BaseMemoryStore
from .types import Memory, Relation, RelationType

logger = logging.getLogger(__name__)


class RelationGraph:
    """
    Append-only relation graph kept in the memory store.

    Edges are created once, when a memory is created, and never
    updated. Repeated calls may produce duplicate or symmetric edges.
    """

    def __init__(self, store: BaseMemoryStore, similarity_threshold: float = 0.7):
        self.store = store
        self.similarity_threshold = similarity_threshold

    async def on_memory_created(
        self,
        new_memory: Memory,
        existing: Iterable[Memory],
    ) -> list[Relation]:
        """
        Link a new memory to every sufficiently similar existing one.

        Args:
            new_memory: The memory just inserted
            existing: Memories already stored for the same agent

        Returns:
            Relations that were persisted
        """
        created = []
        for other in existing:
            if other.id == new_memory.id:
                continue

            score = similarity(new_memory.content, other.content)
            if score <= self.similarity_threshold:
                continue

            relation = Relation.create(
                source_id=new_memory.id,
                target_id=other.id,
                relation_type=RelationType.SIMILAR,
                strength=score,
            )
            try:
                if await self.store.insert_relation(relation):
                    created.append(relation)
            except StoreError as e:
                logger.warning("Could not link %s -> %s: %s", new_memory.id, other.id, e)

        if created:
            logger.debug("Linked memory %s to %d similar memories", new_memory.id, len(created))
        return created

    async def relations_for(self, memory_id: str) -> list[Relation]:
        """All relations where the memory is source or target."""
        try:
            return await self.store.get_relations(memory_id)
        except StoreError as e:
            logger.warning("Could not load relations for %s: %s", memory_id, e)
            return []
