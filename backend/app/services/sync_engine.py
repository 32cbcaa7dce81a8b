"""Transaction history synchronization engine."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional, Union
from app.models.transaction import (
    SignatureRecord,
    SyncMode,
    SyncResult,
    SyncStatus,
    TransactionSummary,
)
from app.services.chain_adapters.base import ChainAdapter
from app.services.chain_adapters.solana import is_valid_solana_address
from app.services.summary_builder import mark_all_fetched, merge_page, new_summary, stamp
from app.services.transaction_store import TransactionStore
from app.utils.errors import (
    InvalidAddress,
    InvalidRequest,
    PageConflict,
    ProtocolError,
    RemoteIndexerError,
    StorageError,
    SyncFailed,
    TransportError,
)

logger = logging.getLogger(__name__)


class AddressLockRegistry:
    """
    One asyncio.Lock per address; different addresses never contend.

    An entry lives only while some caller holds or waits for its lock.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, address: str):
        lock = self._locks.get(address)
        if lock is None:
            lock = self._locks[address] = asyncio.Lock()
        self._users[address] = self._users.get(address, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[address] -= 1
            if not self._users[address]:
                del self._users[address]
                del self._locks[address]


class SyncEngine:
    """
    Walks an address's signature history backward, newest first.

    Each call continues from the oldest signature already stored and appends
    pages with increasing numbers. A short or empty page marks the history as
    fully fetched; from then on sync is a no-op until the address is cleared.
    """

    def __init__(
        self,
        store: TransactionStore,
        adapter_factory: Callable[[], ChainAdapter],
        page_limit: int = 100,
        default_max_pages: int = 5,
        max_pages_limit: int = 100,
        locks: Optional[AddressLockRegistry] = None
    ):
        self.store = store
        self.adapter_factory = adapter_factory
        self.page_limit = page_limit
        self.default_max_pages = default_max_pages
        self.max_pages_limit = max_pages_limit
        self.locks = locks if locks is not None else AddressLockRegistry()

    def _check_address(self, address: str):
        if not is_valid_solana_address(address):
            raise InvalidAddress(address)

    def _resolve_max_pages(self, max_pages: Optional[int]) -> int:
        if max_pages is None:
            return self.default_max_pages
        if max_pages < 1 or max_pages > self.max_pages_limit:
            raise InvalidRequest(
                f"max_pages must be between 1 and {self.max_pages_limit}, got {max_pages}"
            )
        return max_pages

    async def sync(
        self,
        address: str,
        max_pages: Optional[int] = None,
        mode: SyncMode = SyncMode.INITIAL
    ) -> SyncResult:
        """
        Fetch up to max_pages new pages for address.

        Returns:
            SyncResult with status COMPLETE, or INCOMPLETE when a transient
            failure stopped the walk after some progress was made

        Raises:
            InvalidAddress: Before any I/O
            InvalidRequest: If max_pages is out of range, before any I/O
            SyncFailed: Transient failure before any page was stored
            PageConflict, ProtocolError: Propagated as-is
        """
        self._check_address(address)
        max_pages = self._resolve_max_pages(max_pages)

        async with self.locks.hold(address):
            return await self._sync_locked(address, max_pages, mode)

    async def _sync_locked(self, address: str, max_pages: int, mode: SyncMode) -> SyncResult:
        try:
            existing = await asyncio.to_thread(self.store.load_summary, address)
        except StorageError as e:
            logger.error("[SYNC] Cannot load summary for %s: %s", address, e)
            raise SyncFailed(address, e) from e

        if existing is not None and existing.all_fetched:
            logger.info("[SYNC] %s fully fetched, nothing to do", address)
            return SyncResult(status=SyncStatus.COMPLETE, summary=existing)

        if existing is None:
            if mode == SyncMode.REFRESH:
                logger.info("[SYNC] No summary for %s, refresh starts from the latest transaction", address)
            summary = new_summary(address)
            cursor = None
            page_number = 1
        else:
            summary = existing
            cursor = existing.cursor
            page_number = existing.next_page_number

        logger.info(
            "[SYNC] %s sync for %s from page %s (cursor=%s, max_pages=%s)",
            mode.value, address, page_number, cursor, max_pages
        )

        pages_fetched = 0
        error: Optional[Exception] = None

        try:
            async with self.adapter_factory() as adapter:
                while pages_fetched < max_pages:
                    try:
                        records = await adapter.fetch_signatures(
                            address, limit=self.page_limit, before=cursor
                        )
                    except (TransportError, RemoteIndexerError) as e:
                        logger.warning("[SYNC] Fetch of page %s for %s failed: %s", page_number, address, e)
                        error = e
                        break

                    if not records:
                        summary = mark_all_fetched(summary)
                        break

                    # Every page written here is past the stored summary, so a
                    # stored copy is a leftover of an interrupted sync
                    try:
                        await asyncio.to_thread(
                            self.store.write_page, address, page_number, records, replace=True
                        )
                    except StorageError as e:
                        logger.warning("[SYNC] Could not store page %s for %s: %s", page_number, address, e)
                        error = e
                        break

                    summary = merge_page(summary, page_number, records)
                    pages_fetched += 1
                    logger.debug("[SYNC] Stored page %s for %s (%s records)", page_number, address, len(records))

                    cursor = records[-1].signature
                    page_number += 1

                    if len(records) < self.page_limit:
                        summary = mark_all_fetched(summary)
                        break
        except (ProtocolError, PageConflict) as e:
            if pages_fetched:
                logger.error("[SYNC] Sync of %s aborted after %s pages: %s", address, pages_fetched, e)
                await self._save_progress(summary)
            raise

        if error is not None and pages_fetched == 0:
            raise SyncFailed(address, error) from error

        summary = stamp(summary)
        try:
            await asyncio.to_thread(self.store.save_summary, summary)
        except StorageError as e:
            logger.error("[SYNC] Could not save summary for %s: %s", address, e)
            return SyncResult(
                status=SyncStatus.INCOMPLETE,
                summary=summary,
                pages_fetched=pages_fetched,
                error=str(e),
                retryable=True
            )

        logger.info(
            "[SYNC] %s: +%s pages, %s pages / %s transactions total, all_fetched=%s",
            address, pages_fetched, summary.total_pages, summary.total_transactions, summary.all_fetched
        )

        if error is not None:
            return SyncResult(
                status=SyncStatus.INCOMPLETE,
                summary=summary,
                pages_fetched=pages_fetched,
                error=str(error),
                retryable=error.retryable
            )
        return SyncResult(status=SyncStatus.COMPLETE, summary=summary, pages_fetched=pages_fetched)

    async def _save_progress(self, summary: TransactionSummary):
        """Record pages stored before an aborted sync; the abort error wins over a save failure."""
        try:
            await asyncio.to_thread(self.store.save_summary, stamp(summary))
        except StorageError as e:
            logger.error("[SYNC] Could not save partial summary for %s: %s", summary.address, e)

    async def sync_many(
        self,
        addresses: List[str],
        max_pages: Optional[int] = None,
        mode: SyncMode = SyncMode.INITIAL
    ) -> Dict[str, Union[SyncResult, Exception]]:
        """Sync several addresses concurrently; failures are returned per address."""
        unique = list(dict.fromkeys(addresses))
        results = await asyncio.gather(
            *(self.sync(address, max_pages, mode) for address in unique),
            return_exceptions=True
        )
        return dict(zip(unique, results))

    async def lookup(
        self,
        address: str,
        refresh: bool = False,
        max_pages: Optional[int] = None
    ) -> SyncResult:
        """Stored summary if there is one, otherwise an initial sync. refresh continues the walk."""
        if refresh:
            return await self.sync(address, max_pages, SyncMode.REFRESH)

        summary = self.get_summary(address)
        if summary is not None:
            return SyncResult(status=SyncStatus.COMPLETE, summary=summary)
        return await self.sync(address, max_pages, SyncMode.INITIAL)

    def get_summary(self, address: str) -> Optional[TransactionSummary]:
        """Lock-free snapshot read of the stored summary."""
        self._check_address(address)
        return self.store.load_summary(address)

    def get_page(self, address: str, page_number: int) -> Optional[List[SignatureRecord]]:
        self._check_address(address)
        if page_number < 1:
            raise InvalidRequest(f"Invalid page number: {page_number}")
        return self.store.read_page(address, page_number)

    async def clear(self, address: str) -> bool:
        """
        Delete the summary and every page of address.

        The summary goes first: once it is gone the address reads as never
        synced, whatever happens to the page deletions. Returns False when
        some page could not be deleted.
        """
        self._check_address(address)

        async with self.locks.hold(address):
            return await asyncio.to_thread(self._clear_documents, address)

    def _clear_documents(self, address: str) -> bool:
        try:
            summary = self.store.load_summary(address)
        except StorageError as e:
            logger.warning("[CLEAR] Unreadable summary for %s, deleting it anyway: %s", address, e)
            summary = None

        summary_deleted = self.store.delete_summary(address)
        known_pages = [p.page_number for p in summary.pages] if summary else []

        success = True
        for page_number in known_pages:
            try:
                self.store.delete_page(address, page_number)
            except StorageError as e:
                logger.warning("[CLEAR] Could not delete page %s for %s: %s", page_number, address, e)
                success = False

        # Pages written after the last saved summary are not listed in it
        page_number = max(known_pages, default=0) + 1
        while True:
            try:
                if not self.store.delete_page(address, page_number):
                    break
            except StorageError as e:
                logger.warning("[CLEAR] Could not delete page %s for %s: %s", page_number, address, e)
                success = False
                break
            page_number += 1

        if summary_deleted:
            logger.info("[CLEAR] Cleared stored history for %s", address)
        return success
