"""Memory operations exposed to the chat application."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from ..context.selector import AIModel, ContextBudgetAllocator
from ..exceptions import StoreError
from ..storage.conversations import ChatMessage, ConversationLog
from .manager import MemoryManager
from .types import Memory, MemoryStatistics, Relation

logger = logging.getLogger(__name__)


@dataclass
class PromptContext:
    """What gets sent to the model alongside the current message."""
    memory_text: str = ""
    messages: list[ChatMessage] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.memory_text and not self.messages


class MemoryUseCase:
    """
    Entry point for the chat application.

    Every operation degrades to an empty result instead of raising when
    a collaborator fails, so a broken store never interrupts a chat.
    """

    def __init__(
        self,
        manager: MemoryManager,
        conversations: Optional[ConversationLog] = None,
        allocator: Optional[ContextBudgetAllocator] = None,
    ):
        self.manager = manager
        self.conversations = conversations
        self.allocator = allocator or ContextBudgetAllocator()

    # ==================== Ingestion ====================

    async def process_message_for_memory(
        self,
        agent_id: str,
        message: ChatMessage,
        conversation_id: Optional[str] = None,
    ) -> bool:
        """
        Turn a message into a memory if it is worth remembering.

        Returns:
            True if a memory was created
        """
        memory = await self.manager.create_memory_from_message(agent_id, message, conversation_id)
        return memory is not None

    # ==================== Retrieval ====================

    async def retrieve_relevant_memories(
        self,
        agent_id: str,
        query: str,
        limit: int = 10,
    ) -> list[Memory]:
        return await self.manager.retrieve_relevant_memories(agent_id, query, limit)

    async def search_memories(
        self,
        agent_id: str,
        query: str,
        limit: int = 20,
    ) -> list[Memory]:
        return await self.manager.retrieve_relevant_memories(agent_id, query, limit)

    async def get_contextual_memories(
        self,
        agent_id: str,
        conversation_id: str,
        query: str,
    ) -> list[Memory]:
        return await self.manager.retriever.contextual_memories(agent_id, conversation_id, query)

    async def generate_memory_enhanced_context(
        self,
        agent_id: str,
        conversation_id: str,
        current_message: str,
    ) -> str:
        """Rendered memory block for the prompt, or "" if nothing applies."""
        return await self.manager.retriever.enhanced_context_text(
            agent_id, conversation_id, current_message
        )

    def select_context_messages(
        self,
        messages: list[ChatMessage],
        current_prompt: str,
        model: Union[AIModel, str, None] = AIModel.GEMINI_PRO,
        max_context_ratio: Optional[float] = None,
    ) -> list[ChatMessage]:
        return self.allocator.select(messages, current_prompt, model, max_context_ratio)

    async def build_prompt_context(
        self,
        agent_id: str,
        conversation_id: str,
        current_message: str,
        model: Union[AIModel, str, None] = AIModel.GEMINI_PRO,
    ) -> PromptContext:
        """
        Gather memories and budgeted history for the next model call.

        The memory block and the history are selected independently;
        the caller concatenates them into the prompt.
        """
        memory_text = await self.generate_memory_enhanced_context(
            agent_id, conversation_id, current_message
        )

        history: list[ChatMessage] = []
        if self.conversations is not None:
            try:
                history = await self.conversations.get_messages(conversation_id)
            except StoreError as e:
                logger.warning("Could not read conversation %s: %s", conversation_id, e)

        history = [m for m in history if m.content.strip() and not m.is_loading]
        messages = self.select_context_messages(history, current_message, model)
        return PromptContext(memory_text=memory_text, messages=messages)

    # ==================== Feedback ====================

    async def update_memory_importance(self, memory_id: str, feedback: float) -> None:
        """Apply feedback in [-1, 1] as a +/-0.1 importance nudge."""
        await self.manager.update_memory_importance(memory_id, feedback)

    async def update_memory_feedback(self, memory_id: str, is_helpful: bool) -> None:
        await self.update_memory_importance(memory_id, 1.0 if is_helpful else -1.0)

    # ==================== Inspection ====================

    async def get_memory_statistics(self, agent_id: str) -> MemoryStatistics:
        return await self.manager.get_stats(agent_id)

    async def get_conversation_memory_summary(self, agent_id: str, conversation_id: str) -> str:
        return await self.manager.get_conversation_memory_summary(agent_id, conversation_id)

    async def get_memory_relations(self, memory_id: str) -> list[Relation]:
        return await self.manager.get_relations(memory_id)

    async def list_memories(self, agent_id: str) -> list[Memory]:
        return await self.manager.list_memories(agent_id)

    async def forget(self, memory_id: str) -> bool:
        return await self.manager.forget(memory_id)

    async def forget_agent(self, agent_id: str) -> int:
        return await self.manager.forget_agent(agent_id)
