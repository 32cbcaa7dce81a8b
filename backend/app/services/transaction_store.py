"""Page and summary persistence on top of a document store."""
import logging
from typing import Any, List, Optional, Sequence
from pydantic import ValidationError
from app.models.transaction import SignatureRecord, TransactionSummary
from app.services.storage.base import DocumentStore
from app.services.summary_builder import normalize_summary
from app.utils.errors import PageConflict, StorageError

logger = logging.getLogger(__name__)


def _signatures(document: Any) -> Optional[List[Any]]:
    if not isinstance(document, list):
        return None
    return [entry.get("signature") if isinstance(entry, dict) else None for entry in document]


class TransactionStore:
    """
    A page keeps its signatures once the summary records it; the summary is
    replaced as a whole.

    Key layout:
    ``<address>-summary`` and ``<address>-transactions-page-<n>``.
    """

    def __init__(self, documents: DocumentStore, page_limit: int = 100):
        self.documents = documents
        self.page_limit = page_limit

    @staticmethod
    def summary_key(address: str) -> str:
        return f"{address}-summary"

    @staticmethod
    def page_key(address: str, page_number: int) -> str:
        return f"{address}-transactions-page-{page_number}"

    def write_page(
        self,
        address: str,
        page_number: int,
        records: Sequence[SignatureRecord],
        replace: bool = False
    ) -> bool:
        """
        Persist a page.

        A stored page with the same signatures is overwritten, which picks up
        changes in mutable fields such as confirmationStatus. A stored page
        with other signatures is only overwritten when replace is set.

        Returns False when an identical page was already stored.

        Raises:
            PageConflict: If other signatures are stored under the same number
        """
        key = self.page_key(address, page_number)
        document = [record.to_document() for record in records]

        existing = self.documents.get(key)
        if existing is not None:
            if existing == document:
                logger.debug("[STORE] Page %s for %s already stored", page_number, address)
                return False
            if _signatures(existing) != [record.signature for record in records]:
                if not replace:
                    logger.error("[STORE] Refusing to overwrite page %s for %s", page_number, address)
                    raise PageConflict(address, page_number)
                logger.warning("[STORE] Replacing unrecorded page %s for %s", page_number, address)

        self.documents.put(key, document)
        return True

    def read_page(self, address: str, page_number: int) -> Optional[List[SignatureRecord]]:
        document = self.documents.get(self.page_key(address, page_number))
        if document is None:
            return None
        if not isinstance(document, list):
            raise StorageError(f"Page {page_number} for {address} is not a list")
        try:
            return [SignatureRecord.model_validate(entry) for entry in document]
        except ValidationError as e:
            raise StorageError(f"Page {page_number} for {address} is corrupt: {e}") from e

    def delete_page(self, address: str, page_number: int) -> bool:
        return self.documents.delete(self.page_key(address, page_number))

    def load_summary(self, address: str) -> Optional[TransactionSummary]:
        document = self.documents.get(self.summary_key(address))
        if document is None:
            return None
        if not isinstance(document, dict):
            raise StorageError(f"Summary for {address} is not an object")
        try:
            summary = TransactionSummary.model_validate(document)
        except ValidationError as e:
            raise StorageError(f"Summary for {address} is corrupt: {e}") from e

        return normalize_summary(
            summary,
            self.page_limit,
            infer_all_fetched="allFetched" not in document
        )

    def save_summary(self, summary: TransactionSummary) -> None:
        self.documents.put(self.summary_key(summary.address), summary.to_document())

    def delete_summary(self, address: str) -> bool:
        return self.documents.delete(self.summary_key(address))
