"""Memory types for the agent memory engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
import uuid
import json


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryType(Enum):
    """Types of memory."""

    CONVERSATION = "conversation"  # Plain conversational content
    FACT = "fact"  # Names, birthdays, ages
    PREFERENCE = "preference"  # Likes, dislikes, habits
    SKILL = "skill"  # Abilities

    @classmethod
    def from_value(cls, value: Optional[str]) -> "MemoryType":
        """Parse a stored value, falling back to CONVERSATION."""
        try:
            return cls(value)
        except ValueError:
            return cls.CONVERSATION


class RelationType(Enum):
    """Types of edges between memories."""

    SIMILAR = "similar"
    RELATED = "related"
    CONFLICT = "conflict"
    UPDATE = "update"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "RelationType":
        """Parse a stored value, falling back to RELATED."""
        try:
            return cls(value)
        except ValueError:
            return cls.RELATED


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _decode_tags(raw: Any) -> list[str]:
    """Decode stored tags; anything undecodable is treated as no tags."""
    if not raw:
        return []
    if isinstance(raw, (list, tuple, set)):
        return [str(t) for t in raw]
    try:
        tags = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(tags, list):
        return []
    return [str(t) for t in tags]


def _decode_embedding(raw: Any) -> Optional[str]:
    """Embeddings are opaque; only a JSON-decodable payload is kept."""
    if not raw:
        return None
    try:
        json.loads(raw)
    except (TypeError, ValueError):
        return None
    return raw


@dataclass
class Memory:
    """
    A durable, scored fragment of conversation content owned by an agent.

    Attributes:
        id: Unique identifier
        agent_id: Owning agent
        content: Memory content (bounded at creation time)
        type: Memory type (conversation, fact, preference, skill)
        importance: Importance score (0.0-1.0)
        access_count: Number of times retrieved
        conversation_id: Source conversation (optional)
        source_message_id: Source message (optional)
        last_accessed: When memory was last retrieved
        created_at: When memory was created
        updated_at: When memory was last modified
        tags: Category tags
        embedding: Opaque placeholder, unused by the heuristics
    """

    id: str
    agent_id: str
    content: str
    type: MemoryType = MemoryType.CONVERSATION
    importance: float = 0.5
    access_count: int = 0
    conversation_id: Optional[str] = None
    source_message_id: Optional[str] = None
    last_accessed: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    tags: list[str] = field(default_factory=list)
    embedding: Optional[str] = None

    def __post_init__(self):
        self.importance = max(0.0, min(1.0, self.importance))

    @classmethod
    def create(
        cls,
        agent_id: str,
        content: str,
        memory_type: MemoryType = MemoryType.CONVERSATION,
        importance: float = 0.5,
        conversation_id: Optional[str] = None,
        source_message_id: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> "Memory":
        """Create a new memory."""
        now = utcnow()
        return cls(
            id=f"memory_{uuid.uuid4().hex[:12]}",
            agent_id=agent_id,
            content=content,
            type=memory_type,
            importance=importance,
            conversation_id=conversation_id,
            source_message_id=source_message_id,
            last_accessed=now,
            created_at=now,
            updated_at=now,
            tags=tags or [],
        )

    def access(self, when: Optional[datetime] = None) -> "Memory":
        """Record memory access."""
        self.access_count += 1
        self.last_accessed = when or utcnow()
        return self

    def mentions(self, text: str) -> bool:
        """Literal, case-insensitive substring match on content or any tag."""
        needle = text.casefold()
        return needle in self.content.casefold() or any(needle in tag.casefold() for tag in self.tags)

    def update_importance(self, delta: float) -> "Memory":
        """Update importance score."""
        self.importance = max(0.0, min(1.0, self.importance + delta))
        self.updated_at = utcnow()
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "conversation_id": self.conversation_id,
            "source_message_id": self.source_message_id,
            "content": self.content,
            "type": self.type.value,
            "importance": self.importance,
            "access_count": self.access_count,
            "last_accessed": self.last_accessed.isoformat(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "tags": json.dumps(self.tags, ensure_ascii=False),
            "embedding": self.embedding,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Memory":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            agent_id=data["agent_id"],
            conversation_id=data.get("conversation_id"),
            source_message_id=data.get("source_message_id"),
            content=data["content"],
            type=MemoryType.from_value(data.get("type")),
            importance=float(data.get("importance", 0.5)),
            access_count=int(data.get("access_count", 0)),
            last_accessed=_parse_time(data["last_accessed"]),
            created_at=_parse_time(data["created_at"]),
            updated_at=_parse_time(data["updated_at"]),
            tags=_decode_tags(data.get("tags")),
            embedding=_decode_embedding(data.get("embedding")),
        )

    @property
    def age_days(self) -> float:
        """Age of memory in days."""
        return (utcnow() - self.created_at).total_seconds() / 86400

    def __repr__(self) -> str:
        return f"Memory({self.id[-6:]}, {self.type.value}, importance={self.importance:.2f})"


@dataclass
class Relation:
    """A typed, weighted edge between two memories."""

    id: str
    source_id: str
    target_id: str
    type: RelationType = RelationType.RELATED
    strength: float = 0.5
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.strength = max(0.0, min(1.0, self.strength))

    @classmethod
    def create(
        cls,
        source_id: str,
        target_id: str,
        relation_type: RelationType,
        strength: float,
    ) -> "Relation":
        return cls(
            id=f"relation_{uuid.uuid4().hex[:12]}",
            source_id=source_id,
            target_id=target_id,
            type=relation_type,
            strength=strength,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "type": self.type.value,
            "strength": self.strength,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Relation":
        return cls(
            id=data["id"],
            source_id=data["source_id"],
            target_id=data["target_id"],
            type=RelationType.from_value(data.get("type")),
            strength=float(data.get("strength", 0.5)),
            created_at=_parse_time(data["created_at"]),
        )


@dataclass
class MemoryStatistics:
    """Aggregate view over one agent's memories."""

    total: int = 0
    important: int = 0
    recent: int = 0
    average_importance: float = 0.0
    most_accessed: Optional[Memory] = None
    type_distribution: dict[MemoryType, int] = field(default_factory=dict)
