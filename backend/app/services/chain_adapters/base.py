"""Abstract base class for chain adapters."""
from abc import ABC, abstractmethod
from typing import List, Optional
from app.models.transaction import SignatureRecord


class ChainAdapter(ABC):
    """Abstract base class for blockchain signature indexers."""

    @abstractmethod
    async def fetch_signatures(
        self,
        address: str,
        limit: int = 100,
        before: Optional[str] = None
    ) -> List[SignatureRecord]:
        """
        Fetch one page of signature records, newest first.

        Args:
            address: Wallet address
            limit: Maximum number of records in the page
            before: Opaque cursor, only records older than it are returned

        Returns:
            List of signature records; empty when no history is left
        """
        pass

    @abstractmethod
    def validate_address(self, address: str) -> bool:
        """
        Validate a wallet address format.

        Args:
            address: Wallet address to validate

        Returns:
            True if address is valid
        """
        pass

    async def aclose(self):
        """Release network resources held by the adapter."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
