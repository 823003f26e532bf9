"""Agent memory and context-budgeting engine for the chatter client."""

__version__ = "0.1.0"
