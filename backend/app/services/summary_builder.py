"""Pure merge logic for transaction summaries."""
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from app.models.transaction import PageInfo, SignatureRecord, TransactionSummary
from app.utils.errors import PageConflict

DATE_FORMAT = "%d/%m/%Y %H:%M:%S"


def format_block_time(block_time: Optional[int]) -> str:
    """Format unix seconds as DD/MM/YYYY HH:MM:SS (UTC)."""
    if block_time is None:
        return ""
    return datetime.fromtimestamp(block_time, tz=timezone.utc).strftime(DATE_FORMAT)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def utc_now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def new_summary(address: str) -> TransactionSummary:
    return TransactionSummary(address=address)


def oldest_record(records: Sequence[SignatureRecord]) -> Optional[SignatureRecord]:
    """
    Oldest record of a page by (block_time, slot).

    Records without a block time are skipped; when none has one, the last
    record (oldest by position) is returned.
    """
    timed = [r for r in records if r.block_time is not None]
    if timed:
        return min(timed, key=lambda r: r.age_key)
    return records[-1] if records else None


def is_older(candidate: SignatureRecord, current: Optional[SignatureRecord]) -> bool:
    """True when candidate should replace current as the earliest transaction."""
    if current is None:
        return True
    if candidate.block_time is None:
        return False
    if current.block_time is None:
        return True
    return candidate.age_key < current.age_key


def build_page_info(
    page_number: int,
    records: Sequence[SignatureRecord],
    fetched_at_ms: Optional[int] = None
) -> PageInfo:
    last = records[-1]
    return PageInfo(
        page_number=page_number,
        transaction_count=len(records),
        last_signature=last.signature,
        last_block_time=last.block_time,
        last_block_time_formatted=format_block_time(last.block_time),
        timestamp=fetched_at_ms if fetched_at_ms is not None else utc_now_ms()
    )


def merge_page(
    summary: TransactionSummary,
    page_number: int,
    records: Sequence[SignatureRecord],
    fetched_at_ms: Optional[int] = None
) -> TransactionSummary:
    """
    Return a new summary with one non-empty page appended.

    Totals are recomputed from the page list so they can never drift.
    """
    if not records:
        raise ValueError("Cannot merge an empty page")
    if any(p.page_number == page_number for p in summary.pages):
        raise PageConflict(summary.address, page_number)

    info = build_page_info(page_number, records, fetched_at_ms)
    pages: List[PageInfo] = sorted([*summary.pages, info], key=lambda p: p.page_number)

    earliest = summary.earliest_transaction
    candidate = oldest_record(records)
    if candidate is not None and is_older(candidate, earliest):
        earliest = candidate

    return summary.model_copy(update={
        "pages": pages,
        "total_pages": len(pages),
        "total_transactions": sum(p.transaction_count for p in pages),
        "earliest_transaction": earliest,
        "wallet_creation_date": format_block_time(earliest.block_time) if earliest else "",
    })


def mark_all_fetched(summary: TransactionSummary) -> TransactionSummary:
    return summary.model_copy(update={"all_fetched": True})


def stamp(summary: TransactionSummary, now_iso: Optional[str] = None) -> TransactionSummary:
    now_iso = now_iso or utc_now_iso()
    return summary.model_copy(update={"last_updated": now_iso, "last_fetched": now_iso})


def normalize_summary(
    summary: TransactionSummary,
    page_limit: int,
    infer_all_fetched: bool = False
) -> TransactionSummary:
    """
    Re-derive the computed fields of a loaded summary.

    Documents written before allFetched existed get it inferred from the last
    page: a short page means the history was exhausted.
    """
    pages = sorted(summary.pages, key=lambda p: p.page_number)
    update = {
        "pages": pages,
        "total_pages": len(pages),
        "total_transactions": sum(p.transaction_count for p in pages),
    }
    if summary.earliest_transaction is not None:
        update["wallet_creation_date"] = format_block_time(summary.earliest_transaction.block_time)
    if infer_all_fetched and pages and not summary.all_fetched:
        update["all_fetched"] = pages[-1].transaction_count < page_limit
    return summary.model_copy(update=update)
