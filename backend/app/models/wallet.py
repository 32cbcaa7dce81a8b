"""Wallet request/response models."""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional


class SyncRequest(BaseModel):
    """Request model for a sync or refresh."""
    address: str = Field(..., min_length=1, description="Solana wallet address")
    max_pages: Optional[int] = Field(None, description="Pages to fetch in this call")
    refresh: bool = Field(default=False, description="Continue the backward walk of a known wallet")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class BatchSyncRequest(BaseModel):
    """Request model for syncing several wallets at once."""
    addresses: List[str] = Field(..., min_length=1, description="List of wallet addresses")
    max_pages: Optional[int] = Field(None, description="Pages to fetch per wallet")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ClearResponse(BaseModel):
    """Response model for clearing stored wallet data."""
    address: str
    cleared: bool
    message: str


class ValidationResponse(BaseModel):
    """Response model for address validation."""
    address: str
    valid: bool
    message: Optional[str] = None
