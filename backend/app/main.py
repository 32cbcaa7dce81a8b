"""FastAPI application entry point."""
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.api.routes import transactions
from app.utils.errors import (
    InvalidAddress,
    InvalidRequest,
    PageConflict,
    ProtocolError,
    RemoteIndexerError,
    StorageError,
    SyncFailed,
    TransportError,
    TxTrackerError,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS_CODES = [
    (InvalidAddress, 400),
    (InvalidRequest, 400),
    (PageConflict, 409),
    (TransportError, 504),
    (RemoteIndexerError, 502),
    (ProtocolError, 502),
    (SyncFailed, 502),
    (StorageError, 500),
]


def status_code_for(error: TxTrackerError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_class):
            if isinstance(error, SyncFailed) and isinstance(error.cause, TransportError):
                return 504
            return status_code
    return 500


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Solana wallet transaction history sync API"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TxTrackerError)
async def tx_tracker_error_handler(request: Request, exc: TxTrackerError):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "errorType": type(exc).__name__,
            "retryable": exc.retryable
        }
    )


# Include routers
app.include_router(
    transactions.router,
    prefix=f"{settings.api_prefix}/transactions",
    tags=["transactions"]
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Solana Transaction Tracker API",
        "version": settings.api_version,
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
