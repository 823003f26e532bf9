"""Conversation message feed stored as JSONL, one file per conversation."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
import json
import uuid

import aiofiles
import aiofiles.os

from ..exceptions import StoreError


class MessageSender(Enum):
    """Who wrote a message."""
    USER = "user"
    AI = "ai"
    SYSTEM = "system"


@dataclass
class ChatMessage:
    """A single message in a conversation."""
    id: str
    conversation_id: str
    content: str
    sender: MessageSender = MessageSender.USER
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_loading: bool = False

    @classmethod
    def create(
        cls,
        conversation_id: str,
        content: str,
        sender: MessageSender = MessageSender.USER,
    ) -> "ChatMessage":
        return cls(
            id=f"msg_{uuid.uuid4().hex[:12]}",
            conversation_id=conversation_id,
            content=content,
            sender=sender,
        )

    def with_content(self, content: str) -> "ChatMessage":
        """Copy of the message with new content."""
        return replace(self, content=content, is_loading=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "content": self.content,
            "sender": self.sender.value,
            "created_at": self.created_at.isoformat(),
            "is_loading": self.is_loading,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        return cls(
            id=data["id"],
            conversation_id=data["conversation_id"],
            content=data["content"],
            sender=MessageSender(data.get("sender", "user")),
            created_at=datetime.fromisoformat(data["created_at"]),
            is_loading=data.get("is_loading", False),
        )


class ConversationLog:
    """
    Read/append access to conversation history.

    Structure:
    data/conversations/<conversation_id>.jsonl
    """

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, conversation_id: str) -> Path:
        return self.base_path / f"{conversation_id}.jsonl"

    async def append(self, message: ChatMessage):
        """Append a message to its conversation."""
        try:
            async with aiofiles.open(self._path(message.conversation_id), "a", encoding="utf-8") as f:
                await f.write(json.dumps(message.to_dict(), ensure_ascii=False) + "\n")
        except OSError as e:
            raise StoreError("append_message", str(e)) from e

    async def get_messages(self, conversation_id: str) -> list[ChatMessage]:
        """All messages of a conversation, oldest first."""
        path = self._path(conversation_id)
        if not path.exists():
            return []

        messages = []
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                async for line in f:
                    line = line.strip()
                    if line:
                        try:
                            messages.append(ChatMessage.from_dict(json.loads(line)))
                        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                            continue
        except OSError as e:
            raise StoreError("get_messages", str(e)) from e

        messages.sort(key=lambda m: m.created_at)
        return messages

    async def list_conversations(self) -> list[str]:
        """IDs of all stored conversations."""
        try:
            names = await aiofiles.os.listdir(self.base_path)
        except OSError as e:
            raise StoreError("list_conversations", str(e)) from e
        return sorted(name[:-len(".jsonl")] for name in names if name.endswith(".jsonl"))
