"""Service wiring for the API layer."""
from functools import lru_cache
from app.config import settings
from app.services.chain_adapters.solana import SolanaAdapter
from app.services.storage.base import DocumentStore
from app.services.storage.filesystem import FileDocumentStore
from app.services.storage.memory import MemoryDocumentStore
from app.services.sync_engine import SyncEngine
from app.services.transaction_store import TransactionStore


def build_document_store(backend: str, data_dir: str) -> DocumentStore:
    """Create the document store configured by storage_backend."""
    if backend == "memory":
        return MemoryDocumentStore()
    if backend == "file":
        return FileDocumentStore(data_dir)
    raise ValueError(f"Unknown storage backend: {backend}")


def build_sync_engine(documents: DocumentStore) -> SyncEngine:
    return SyncEngine(
        store=TransactionStore(documents, page_limit=settings.page_limit),
        adapter_factory=lambda: SolanaAdapter(
            settings.rpc_url,
            timeout=settings.rpc_timeout_seconds
        ),
        page_limit=settings.page_limit,
        default_max_pages=settings.default_max_pages,
        max_pages_limit=settings.max_pages_limit,
    )


@lru_cache
def get_store() -> DocumentStore:
    return build_document_store(settings.storage_backend, settings.data_dir)


@lru_cache
def get_sync_engine() -> SyncEngine:
    """
    Process-wide engine.

    Every request must go through the same per-address locks.
    """
    return build_sync_engine(get_store())
