"""Transaction history endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from typing import Optional
from app.api.dependencies import get_sync_engine
from app.config import settings
from app.models.transaction import SyncMode, SyncResult
from app.models.wallet import BatchSyncRequest, ClearResponse, SyncRequest, ValidationResponse
from app.services.chain_adapters.solana import is_valid_solana_address
from app.services.sync_engine import SyncEngine

router = APIRouter()


def _sync_response(result: SyncResult) -> JSONResponse:
    """200 for a complete sync, 206 when only part of the walk succeeded."""
    return JSONResponse(
        status_code=200 if result.is_complete else 206,
        content=result.model_dump(by_alias=True, mode="json")
    )


@router.post("/sync")
async def sync_transactions(
    request: SyncRequest,
    engine: SyncEngine = Depends(get_sync_engine)
):
    """
    Fetch signature history pages for a wallet.

    A first call starts from the most recent transaction; later calls (or
    refresh=true) continue backward from the oldest stored signature.
    """
    mode = SyncMode.REFRESH if request.refresh else SyncMode.INITIAL
    result = await engine.sync(request.address, request.max_pages, mode)
    return _sync_response(result)


@router.post("/sync/batch")
async def sync_many_transactions(
    request: BatchSyncRequest,
    engine: SyncEngine = Depends(get_sync_engine)
):
    """Sync several wallets concurrently. Per-wallet failures do not fail the batch."""
    if len(request.addresses) > settings.max_wallets:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {settings.max_wallets} wallets allowed"
        )

    results = await engine.sync_many(request.addresses, request.max_pages)

    wallets = {}
    for address, result in results.items():
        if isinstance(result, SyncResult):
            wallets[address] = result.model_dump(by_alias=True, mode="json")
        else:
            wallets[address] = {
                "status": "failed",
                "error": str(result),
                "errorType": type(result).__name__
            }
    return {"wallets": wallets}


@router.get("/validate/{address}", response_model=ValidationResponse)
async def validate_wallet(address: str):
    """Validate a Solana wallet address."""
    is_valid = is_valid_solana_address(address)

    return ValidationResponse(
        address=address,
        valid=is_valid,
        message="Address is valid" if is_valid else "Invalid Solana address format"
    )


@router.get("/{address}")
async def get_transactions(
    address: str,
    refresh: bool = Query(default=False, description="Continue fetching older history"),
    max_pages: Optional[int] = Query(default=None, alias="maxPages"),
    engine: SyncEngine = Depends(get_sync_engine)
):
    """Stored summary for a wallet, fetching its first pages if none exists yet."""
    result = await engine.lookup(address, refresh=refresh, max_pages=max_pages)
    return _sync_response(result)


@router.get("/{address}/summary")
async def get_summary(address: str, engine: SyncEngine = Depends(get_sync_engine)):
    """Stored summary only; never calls the RPC."""
    summary = engine.get_summary(address)
    if summary is None:
        raise HTTPException(status_code=404, detail="Transaction summary not found")
    return summary.model_dump(by_alias=True, mode="json")


@router.get("/{address}/pages/{page_number}")
async def get_transactions_page(
    address: str,
    page_number: int,
    engine: SyncEngine = Depends(get_sync_engine)
):
    """One stored page of signature records, newest first."""
    records = engine.get_page(address, page_number)
    if records is None:
        raise HTTPException(status_code=404, detail="Transactions page not found")
    return [record.to_document() for record in records]


@router.delete("/{address}", response_model=ClearResponse)
async def clear_transactions(address: str, engine: SyncEngine = Depends(get_sync_engine)):
    """Delete every stored page and the summary of a wallet."""
    cleared = await engine.clear(address)
    return ClearResponse(
        address=address,
        cleared=cleared,
        message=(
            "Transaction data cleared successfully" if cleared
            else "Summary removed, some pages could not be deleted"
        )
    )
