"""Custom exceptions for the chatter memory engine."""

from dataclasses import dataclass


@dataclass
class StoreError(Exception):
    """
    Raised by a store when the backend fails.

    "Not found" is never an error: stores return None or an empty
    list for that. Callers at the engine boundary catch this and
    degrade to an empty result.
    """
    operation: str
    message: str

    def __str__(self):
        return f"Store operation '{self.operation}' failed: {self.message}"
