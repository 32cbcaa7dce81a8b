"""Abstract key-document store."""
from abc import ABC, abstractmethod
from typing import Any, Optional


class DocumentStore(ABC):
    """
    Stores one JSON document per key.

    Implementations must make a single put atomic: after a crash a key holds
    either the previous document or the new one, never a partial write.
    Failures are raised as StorageError.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the document stored under key, or None."""
        pass

    @abstractmethod
    def put(self, key: str, document: Any) -> None:
        """Replace the document stored under key."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key. Returns False when nothing was stored."""
        pass

    def exists(self, key: str) -> bool:
        return self.get(key) is not None
