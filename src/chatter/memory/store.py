"""Memory storage backends."""

import aiosqlite
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Optional

from ..exceptions import StoreError
from .types import Memory, Relation

logger = logging.getLogger(__name__)


class BaseMemoryStore(ABC):
    """
    CRUD surface for memories and relations.

    Implementations raise StoreError when the backend fails and return
    None, False or an empty list when a record simply does not exist.
    """

    @abstractmethod
    async def get_by_agent(self, agent_id: str) -> list[Memory]:
        """All memories for an agent, most important first."""
        pass

    @abstractmethod
    async def get_by_conversation(self, conversation_id: str) -> list[Memory]:
        """All memories sourced from a conversation, oldest first."""
        pass

    @abstractmethod
    async def get_by_id(self, memory_id: str) -> Optional[Memory]:
        pass

    @abstractmethod
    async def insert(self, memory: Memory) -> bool:
        pass

    @abstractmethod
    async def update(self, memory: Memory) -> bool:
        """Overwrite a memory; False if it does not exist."""
        pass

    @abstractmethod
    async def delete(self, memory_id: str) -> bool:
        """Delete one memory. Relations pointing at it are left alone."""
        pass

    @abstractmethod
    async def delete_by_agent(self, agent_id: str) -> int:
        pass

    @abstractmethod
    async def search_by_text(self, agent_id: str, query: str) -> list[Memory]:
        """Case-insensitive substring match over content and tags."""
        pass

    @abstractmethod
    async def top_by_importance(self, agent_id: str, limit: int) -> list[Memory]:
        pass

    @abstractmethod
    async def update_access(self, memory_id: str, accessed_at: datetime) -> bool:
        """Increment access_count and stamp last_accessed."""
        pass

    @abstractmethod
    async def count(self, agent_id: str) -> int:
        pass

    @abstractmethod
    async def insert_relation(self, relation: Relation) -> bool:
        pass

    @abstractmethod
    async def get_relations(self, memory_id: str) -> list[Relation]:
        """Relations where the memory is either endpoint."""
        pass

    @abstractmethod
    async def delete_relation(self, relation_id: str) -> bool:
        pass


class SQLiteMemoryStore(BaseMemoryStore):
    """
    SQLite-based memory storage.

    Opens a short-lived connection per operation, the same way the
    conversation and task stores do.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._initialized = False

    async def initialize(self):
        """Initialize database schema."""
        if self._initialized:
            return

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS memories (
                        id TEXT PRIMARY KEY,
                        agent_id TEXT NOT NULL,
                        conversation_id TEXT,
                        source_message_id TEXT,
                        content TEXT NOT NULL,
                        type TEXT NOT NULL,
                        importance REAL DEFAULT 0.5,
                        access_count INTEGER DEFAULT 0,
                        last_accessed TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        tags TEXT,
                        embedding TEXT
                    )
                """)
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS memory_relations (
                        id TEXT PRIMARY KEY,
                        source_id TEXT NOT NULL,
                        target_id TEXT NOT NULL,
                        type TEXT NOT NULL,
                        strength REAL DEFAULT 0.5,
                        created_at TEXT NOT NULL
                    )
                """)

                # Indexes for common queries
                await db.execute(
                    "CREATE INDEX IF NOT EXISTS idx_agent ON memories(agent_id)"
                )
                await db.execute(
                    "CREATE INDEX IF NOT EXISTS idx_conversation ON memories(conversation_id)"
                )
                await db.execute(
                    "CREATE INDEX IF NOT EXISTS idx_importance ON memories(agent_id, importance)"
                )
                await db.execute(
                    "CREATE INDEX IF NOT EXISTS idx_relation_source ON memory_relations(source_id)"
                )
                await db.execute(
                    "CREATE INDEX IF NOT EXISTS idx_relation_target ON memory_relations(target_id)"
                )

                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise StoreError("initialize", str(e)) from e

        self._initialized = True

    @asynccontextmanager
    async def _connect(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        await self.initialize()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except (aiosqlite.Error, OSError) as e:
            raise StoreError(operation, str(e)) from e

    async def _fetch_memories(self, operation: str, sql: str, params: tuple) -> list[Memory]:
        """Run a query and decode its rows; rows that fail to decode are skipped."""
        memories = []
        async with self._connect(operation) as db:
            async with db.execute(sql, params) as cursor:
                async for row in cursor:
                    try:
                        memories.append(Memory.from_dict(dict(row)))
                    except (KeyError, TypeError, ValueError) as e:
                        logger.warning("Skipping unreadable memory row %s: %s", row["id"], e)
        return memories

    async def get_by_agent(self, agent_id: str) -> list[Memory]:
        return await self._fetch_memories(
            "get_by_agent",
            "SELECT * FROM memories WHERE agent_id = ? "
            "ORDER BY importance DESC, last_accessed DESC",
            (agent_id,),
        )

    async def get_by_conversation(self, conversation_id: str) -> list[Memory]:
        return await self._fetch_memories(
            "get_by_conversation",
            "SELECT * FROM memories WHERE conversation_id = ? ORDER BY created_at ASC",
            (conversation_id,),
        )

    async def get_by_id(self, memory_id: str) -> Optional[Memory]:
        memories = await self._fetch_memories(
            "get_by_id",
            "SELECT * FROM memories WHERE id = ?",
            (memory_id,),
        )
        return memories[0] if memories else None

    async def insert(self, memory: Memory) -> bool:
        data = memory.to_dict()
        async with self._connect("insert") as db:
            await db.execute(
                """
                INSERT INTO memories
                (id, agent_id, conversation_id, source_message_id, content, type,
                 importance, access_count, last_accessed, created_at, updated_at,
                 tags, embedding)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["id"],
                    data["agent_id"],
                    data["conversation_id"],
                    data["source_message_id"],
                    data["content"],
                    data["type"],
                    data["importance"],
                    data["access_count"],
                    data["last_accessed"],
                    data["created_at"],
                    data["updated_at"],
                    data["tags"],
                    data["embedding"],
                ),
            )
            await db.commit()
        return True

    async def update(self, memory: Memory) -> bool:
        data = memory.to_dict()
        async with self._connect("update") as db:
            cursor = await db.execute(
                """
                UPDATE memories SET
                    content = ?, type = ?, importance = ?, access_count = ?,
                    last_accessed = ?, updated_at = ?, tags = ?, embedding = ?
                WHERE id = ?
                """,
                (
                    data["content"],
                    data["type"],
                    data["importance"],
                    data["access_count"],
                    data["last_accessed"],
                    data["updated_at"],
                    data["tags"],
                    data["embedding"],
                    data["id"],
                ),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete(self, memory_id: str) -> bool:
        async with self._connect("delete") as db:
            cursor = await db.execute(
                "DELETE FROM memories WHERE id = ?", (memory_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    async def delete_by_agent(self, agent_id: str) -> int:
        async with self._connect("delete_by_agent") as db:
            cursor = await db.execute(
                "DELETE FROM memories WHERE agent_id = ?", (agent_id,)
            )
            await db.commit()
            return cursor.rowcount

    async def search_by_text(self, agent_id: str, query: str) -> list[Memory]:
        """
        Search memories by content or tags.

        Matching runs in Python rather than through LIKE, which treats
        % and _ as wildcards and only folds ASCII case.
        """
        memories = await self._fetch_memories(
            "search_by_text",
            "SELECT * FROM memories WHERE agent_id = ? "
            "ORDER BY importance DESC, last_accessed DESC",
            (agent_id,),
        )
        return [m for m in memories if m.mentions(query)]

    async def top_by_importance(self, agent_id: str, limit: int) -> list[Memory]:
        return await self._fetch_memories(
            "top_by_importance",
            "SELECT * FROM memories WHERE agent_id = ? "
            "ORDER BY importance DESC, last_accessed DESC LIMIT ?",
            (agent_id, limit),
        )

    async def update_access(self, memory_id: str, accessed_at: datetime) -> bool:
        async with self._connect("update_access") as db:
            cursor = await db.execute(
                "UPDATE memories SET access_count = access_count + 1, last_accessed = ? "
                "WHERE id = ?",
                (accessed_at.isoformat(), memory_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def count(self, agent_id: str) -> int:
        async with self._connect("count") as db:
            async with db.execute(
                "SELECT COUNT(*) FROM memories WHERE agent_id = ?", (agent_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def insert_relation(self, relation: Relation) -> bool:
        data = relation.to_dict()
        async with self._connect("insert_relation") as db:
            await db.execute(
                """
                INSERT INTO memory_relations
                (id, source_id, target_id, type, strength, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    data["id"],
                    data["source_id"],
                    data["target_id"],
                    data["type"],
                    data["strength"],
                    data["created_at"],
                ),
            )
            await db.commit()
        return True

    async def get_relations(self, memory_id: str) -> list[Relation]:
        relations = []
        async with self._connect("get_relations") as db:
            async with db.execute(
                "SELECT * FROM memory_relations WHERE source_id = ? OR target_id = ? "
                "ORDER BY created_at ASC",
                (memory_id, memory_id),
            ) as cursor:
                async for row in cursor:
                    try:
                        relations.append(Relation.from_dict(dict(row)))
                    except (KeyError, TypeError, ValueError) as e:
                        logger.warning("Skipping unreadable relation row %s: %s", row["id"], e)
        return relations

    async def delete_relation(self, relation_id: str) -> bool:
        async with self._connect("delete_relation") as db:
            cursor = await db.execute(
                "DELETE FROM memory_relations WHERE id = ?", (relation_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    def __repr__(self) -> str:
        return f"SQLiteMemoryStore({self.db_path})"
