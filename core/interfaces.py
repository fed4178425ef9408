"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod


class StorageError(RuntimeError):
    """Raised by a backend when a read or write cannot be completed."""


class KeyValueBackend(ABC):
    """Abstract key-value persistence backend.

    Values are JSON-serialisable (dicts, lists, strings, numbers, None).
    """

    @abstractmethod
    def get(self, key: str):
        """Load the value stored under key. Returns None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        pass
