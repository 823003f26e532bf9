"""Fit conversation history into a model's token budget."""

import logging
from enum import Enum
from typing import Optional, Union

from ..config import ContextConfig
from ..storage.conversations import ChatMessage

logger = logging.getLogger(__name__)


class AIModel(Enum):
    """Supported chat models."""
    GEMINI_PRO = "gemini-pro"
    KIMI = "kimi"
    DOUBAO = "doubao"
    CUSTOM = "custom"


# Total context window per model
MODEL_TOKEN_LIMITS = {
    AIModel.GEMINI_PRO: 30720,
    AIModel.KIMI: 200000,
    AIModel.DOUBAO: 32768,
    AIModel.CUSTOM: 4096,  # Usually GPT-3.5 class
}

RECOMMENDED_MESSAGE_COUNTS = {
    AIModel.KIMI: 50,
    AIModel.GEMINI_PRO: 30,
    AIModel.DOUBAO: 20,
    AIModel.CUSTOM: 15,
}

SENTENCE_TERMINATORS = ("。", "！", "？", ".", "!", "?")


def resolve_model(model: Union[AIModel, str, None]) -> AIModel:
    """Accept an AIModel, its name or its value; unknown models are CUSTOM."""
    if isinstance(model, AIModel):
        return model
    if model:
        key = model.strip()
        if key.upper() in AIModel.__members__:
            return AIModel[key.upper()]
        for candidate in AIModel:
            if candidate.value == key.lower():
                return candidate
    return AIModel.CUSTOM


class ContextBudgetAllocator:
    """
    Selects the newest history that fits the context budget.

    Token counts are a per-character estimate, not a tokenizer.
    """

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()

    def estimate_tokens(self, text: str) -> int:
        return int(len(text) * self.config.tokens_per_char)

    def token_limit(self, model: Union[AIModel, str, None]) -> int:
        return MODEL_TOKEN_LIMITS[resolve_model(model)]

    def available_budget(
        self,
        model: Union[AIModel, str, None],
        max_context_ratio: Optional[float] = None,
    ) -> float:
        """Tokens left for history and prompt after the response reserve."""
        ratio = self.config.max_context_ratio if max_context_ratio is None else max_context_ratio
        return (self.token_limit(model) - self.config.response_reserve_tokens) * ratio

    def recommended_message_count(self, model: Union[AIModel, str, None]) -> int:
        return RECOMMENDED_MESSAGE_COUNTS[resolve_model(model)]

    def select(
        self,
        messages: list[ChatMessage],
        current_prompt: str,
        model: Union[AIModel, str, None] = AIModel.GEMINI_PRO,
        max_context_ratio: Optional[float] = None,
    ) -> list[ChatMessage]:
        """
        Select context messages under the model's token budget.

        Walks from newest to oldest, keeping whole messages while they
        fit. The first message that does not fit is truncated into the
        leftover budget (if that budget is still worth using) and the
        walk stops there.

        Args:
            messages: Conversation history, oldest first
            current_prompt: The user input about to be sent
            model: Target model
            max_context_ratio: Share of the window usable for context

        Returns:
            Selected messages, oldest first
        """
        if not messages:
            return []

        available = self.available_budget(model, max_context_ratio)
        prompt_tokens = self.estimate_tokens(current_prompt)
        remaining = available - prompt_tokens

        logger.debug(
            "Context budget for %s: available=%.1f prompt=%d remaining=%.1f messages=%d",
            resolve_model(model).name, available, prompt_tokens, remaining, len(messages),
        )

        if remaining <= 0:
            logger.debug("Prompt exhausts the context budget, sending no history")
            return []

        selected: list[ChatMessage] = []
        for message in reversed(messages):
            tokens = self.estimate_tokens(message.content)

            if tokens <= remaining:
                selected.insert(0, message)
                remaining -= tokens
                continue

            if remaining > self.config.min_truncation_tokens:
                truncated = self.truncate(message.content, remaining)
                if truncated:
                    selected.insert(0, message.with_content(truncated))
                    logger.debug("Truncated message %s to %d chars", message.id, len(truncated))
            break

        logger.debug("Selected %d of %d messages", len(selected), len(messages))
        return selected

    def truncate(self, content: str, max_tokens: float) -> str:
        """
        Cut content to fit max_tokens.

        Prefers the last sentence end past the halfway mark of the
        character budget; otherwise hard-cuts and appends "...".
        """
        max_chars = int(max_tokens / self.config.tokens_per_char)
        if len(content) <= max_chars:
            return content

        truncated = content[:max_chars]
        last_sentence_end = max(truncated.rfind(t) for t in SENTENCE_TERMINATORS)

        if last_sentence_end > max_chars * 0.5:
            return truncated[:last_sentence_end + 1]
        return truncated[:max(max_chars - 3, 0)] + "..."
