"""Agent memory system: scoring, linking, eviction and retrieval."""

from .types import Memory, MemoryType, Relation, RelationType, MemoryStatistics
from .scorer import MemoryScorer
from .similarity import similarity, relevance
from .store import BaseMemoryStore, SQLiteMemoryStore
from .inmemory import InMemoryStore
from .relations import RelationGraph
from .eviction import EvictionPolicy
from .retriever import MemoryRetriever
from .manager import MemoryManager
from .usecase import MemoryUseCase, PromptContext

__all__ = [
    "Memory",
    "MemoryType",
    "Relation",
    "RelationType",
    "MemoryStatistics",
    "MemoryScorer",
    "similarity",
    "relevance",
    "BaseMemoryStore",
    "SQLiteMemoryStore",
    "InMemoryStore",
    "RelationGraph",
    "EvictionPolicy",
    "MemoryRetriever",
    "MemoryManager",
    "MemoryUseCase",
    "PromptContext",
]
