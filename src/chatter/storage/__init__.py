"""Storage layer for conversation history."""

from .conversations import ChatMessage, ConversationLog, MessageSender

__all__ = ["ChatMessage", "ConversationLog", "MessageSender"]
