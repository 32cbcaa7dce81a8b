"""Shared fixtures: an in-process RPC indexer and engines wired to it."""
import json
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from app.services.chain_adapters.solana import SolanaAdapter
from app.services.storage.memory import MemoryDocumentStore
from app.services.sync_engine import SyncEngine
from app.services.transaction_store import TransactionStore
from app.utils.errors import StorageError

RPC_URL = "https://rpc.test"

WALLET = "GthTyfd3EV9Y8wN6zhZeES5PgT2jQVzLrZizfZquAY5S"
OTHER_WALLET = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

BASE_BLOCK_TIME = 1_600_000_000


def make_records(count: int, prefix: str = "sig", base_time: int = BASE_BLOCK_TIME) -> List[dict]:
    """Raw getSignaturesForAddress entries, newest first."""
    return [
        {
            "signature": f"{prefix}-{count - i:05d}",
            "slot": 1_000 + count - i,
            "blockTime": base_time + (count - i) * 10,
            "err": None,
            "memo": None,
            "confirmationStatus": "finalized",
        }
        for i in range(count)
    ]


class FakeIndexer:
    """
    Serves getSignaturesForAddress from in-memory histories.

    failures maps a 1-based call number to either an exception class from
    httpx or a ready-made httpx.Response returned instead of the page.
    """

    def __init__(self):
        self.histories: Dict[str, List[dict]] = {}
        self.calls: List[dict] = []
        self.failures: Dict[int, object] = {}

    def set_history(self, address: str, records: List[dict]):
        self.histories[address] = records

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        address, options = body["params"]
        self.calls.append({"address": address, **options})

        failure = self.failures.get(len(self.calls))
        if isinstance(failure, httpx.Response):
            return failure
        if failure is not None:
            raise failure("simulated failure", request=request)

        history = self.histories.get(address, [])
        start = 0
        if options.get("before"):
            signatures = [r["signature"] for r in history]
            start = signatures.index(options["before"]) + 1
        page = history[start:start + options["limit"]]
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": page})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class CountingDocumentStore(MemoryDocumentStore):
    """Memory store that records writes and can be told to fail them."""

    def __init__(self):
        super().__init__()
        self.writes: List[str] = []
        self.fail_put: Optional[Callable[[str], bool]] = None
        self.fail_delete: Optional[Callable[[str], bool]] = None

    def put(self, key, document):
        if self.fail_put and self.fail_put(key):
            raise StorageError(f"simulated write failure for {key}")
        self.writes.append(key)
        super().put(key, document)

    def delete(self, key):
        if self.fail_delete and self.fail_delete(key):
            raise StorageError(f"simulated delete failure for {key}")
        return super().delete(key)


@pytest.fixture
def indexer() -> FakeIndexer:
    return FakeIndexer()


@pytest.fixture
def documents() -> CountingDocumentStore:
    return CountingDocumentStore()


@pytest.fixture
def store(documents) -> TransactionStore:
    return TransactionStore(documents, page_limit=100)


@pytest.fixture
def make_engine(indexer):
    def _make(documents) -> SyncEngine:
        return SyncEngine(
            store=TransactionStore(documents, page_limit=100),
            adapter_factory=lambda: SolanaAdapter(RPC_URL, timeout=5.0, transport=indexer.transport()),
            page_limit=100,
            default_max_pages=5,
            max_pages_limit=50,
        )
    return _make


@pytest.fixture
def engine(make_engine, documents) -> SyncEngine:
    return make_engine(documents)
