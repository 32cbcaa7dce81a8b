"""In-memory document store."""
import json
from typing import Any, Optional
from app.services.storage.base import DocumentStore
from app.utils.errors import StorageError


class MemoryDocumentStore(DocumentStore):
    """Process-local store, used for tests and ephemeral deployments."""

    def __init__(self):
        # key -> serialized JSON
        self._documents: dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._documents.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def put(self, key: str, document: Any) -> None:
        try:
            self._documents[key] = json.dumps(document, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Document for {key} is not JSON serializable: {e}") from e

    def delete(self, key: str) -> bool:
        return self._documents.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        return key in self._documents

    def keys(self) -> list[str]:
        return sorted(self._documents)
