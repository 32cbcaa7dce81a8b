"""Signature history models."""
from enum import Enum
from typing import Any, List, Optional, Tuple
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class SignatureRecord(BaseModel):
    """One getSignaturesForAddress entry, stored exactly as returned."""
    signature: str = Field(..., description="Transaction signature (unique id)")
    slot: int = Field(..., description="Slot the transaction was processed in")
    block_time: Optional[int] = Field(None, description="Unix seconds, absent for old entries")
    err: Optional[Any] = Field(None, description="Non-null when the transaction failed")
    memo: Optional[str] = Field(None, description="Memo attached to the transaction")
    confirmation_status: Optional[str] = Field(None, description="processed, confirmed or finalized")

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"
        frozen = True

    @property
    def age_key(self) -> Tuple[int, int]:
        """Sort key: smaller means older. Only meaningful when block_time is set."""
        return (self.block_time, self.slot)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class PageInfo(BaseModel):
    """Metadata about one persisted page, kept inside the summary."""
    page_number: int = Field(..., ge=1)
    transaction_count: int = Field(..., ge=0)
    last_signature: str = Field(..., description="Oldest signature of the page, next cursor")
    last_block_time: Optional[int] = None
    last_block_time_formatted: str = ""
    timestamp: int = Field(..., description="Wall clock fetch time in milliseconds")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TransactionSummary(BaseModel):
    """Durable per-address document describing accumulated fetch progress."""
    address: str
    total_pages: int = 0
    total_transactions: int = 0
    earliest_transaction: Optional[SignatureRecord] = None
    wallet_creation_date: str = ""
    pages: List[PageInfo] = Field(default_factory=list)
    all_fetched: bool = False
    last_updated: Optional[str] = None
    last_fetched: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def cursor(self) -> Optional[str]:
        """Signature of the oldest record fetched so far."""
        if self.pages:
            return self.pages[-1].last_signature
        if self.earliest_transaction:
            return self.earliest_transaction.signature
        return None

    @property
    def next_page_number(self) -> int:
        return max((p.page_number for p in self.pages), default=0) + 1

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class SyncMode(str, Enum):
    """How a sync call was requested."""
    INITIAL = "initial"
    REFRESH = "refresh"


class SyncStatus(str, Enum):
    """Outcome of a sync call that made it past validation."""
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


class SyncResult(BaseModel):
    """Summary plus how the sync call ended."""
    status: SyncStatus
    summary: TransactionSummary
    pages_fetched: int = 0
    error: Optional[str] = None
    retryable: bool = False

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def is_complete(self) -> bool:
        return self.status == SyncStatus.COMPLETE
