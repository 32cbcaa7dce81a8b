"""Custom error classes."""
from typing import Any, Optional


class TxTrackerError(Exception):
    """Base exception for transaction tracker application."""
    retryable: bool = False


class InvalidAddress(TxTrackerError):
    """Candidate string is not a valid Solana address."""

    def __init__(self, address: Any):
        super().__init__(f"Invalid Solana address: {address}")
        self.address = address


class InvalidRequest(TxTrackerError):
    """Request parameters are out of range (e.g. max_pages < 1)."""
    pass


class RemoteIndexerError(TxTrackerError):
    """The RPC indexer answered with a JSON-RPC error envelope."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class TransportError(TxTrackerError):
    """Network failure, timeout or unavailable RPC endpoint."""
    retryable = True


class ProtocolError(TxTrackerError):
    """RPC response does not have the expected shape."""
    pass


class PageConflict(TxTrackerError):
    """Attempt to overwrite a stored page with different content."""

    def __init__(self, address: str, page_number: int):
        super().__init__(
            f"Page {page_number} for {address} already stored with different content"
        )
        self.address = address
        self.page_number = page_number


class StorageError(TxTrackerError):
    """Error related to the persistence layer."""
    retryable = True


class SyncFailed(TxTrackerError):
    """Sync made no progress at all before failing."""

    def __init__(self, address: str, cause: Exception):
        super().__init__(f"Sync failed for {address}: {cause}")
        self.address = address
        self.cause = cause
        self.retryable = getattr(cause, "retryable", False)
