"""Token budgeting for conversation history."""

from .selector import AIModel, ContextBudgetAllocator, MODEL_TOKEN_LIMITS, resolve_model

__all__ = [
    "AIModel",
    "ContextBudgetAllocator",
    "MODEL_TOKEN_LIMITS",
    "resolve_model",
]
