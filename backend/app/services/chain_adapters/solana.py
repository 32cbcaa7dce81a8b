"""Solana chain adapter."""
import logging
from typing import List, Optional, Dict, Any
import httpx
import base58
from pydantic import ValidationError
from app.services.chain_adapters.base import ChainAdapter
from app.models.transaction import SignatureRecord
from app.utils.errors import (
    InvalidAddress,
    InvalidRequest,
    ProtocolError,
    RemoteIndexerError,
    TransportError,
)

logger = logging.getLogger(__name__)

# getSignaturesForAddress accepts at most 1000 records per call
MAX_SIGNATURES_LIMIT = 1000
# JSON-RPC "invalid params"
INVALID_PARAMS_CODE = -32602


def is_valid_solana_address(address: Any) -> bool:
    """
    Validate Solana address format.

    Solana addresses are base58 encoded 32 byte public keys, 32-44 characters.
    """
    if not isinstance(address, str) or len(address) < 32 or len(address) > 44:
        return False

    try:
        decoded = base58.b58decode(address)
    except ValueError:
        return False
    return len(decoded) == 32


class SolanaAdapter(ChainAdapter):
    """Adapter for the Solana JSON-RPC signature index."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.rpc_url = rpc_url
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self):
        await self.client.aclose()

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make RPC call to Solana."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timed out calling Solana RPC {method}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error calling Solana RPC: {str(e)}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransportError(
                f"Solana RPC unavailable for {method}: HTTP {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            if response.is_error:
                raise RemoteIndexerError(
                    f"RPC request failed with status {response.status_code}",
                    data=response.text
                ) from e
            raise ProtocolError(f"Non-JSON response from Solana RPC {method}") from e

        if not isinstance(data, dict):
            raise ProtocolError(f"Unexpected RPC payload for {method}: {type(data).__name__}")

        if data.get("error") is not None:
            error = data["error"]
            if isinstance(error, dict):
                raise RemoteIndexerError(
                    f"RPC error: {error.get('message', 'Unknown error')}",
                    code=error.get("code"),
                    data=error.get("data")
                )
            raise RemoteIndexerError(f"RPC error: {error}")

        if response.is_error:
            raise RemoteIndexerError(f"RPC request failed with status {response.status_code}")

        if "result" not in data:
            raise ProtocolError(f"RPC response for {method} has no result")

        return data["result"]

    async def fetch_signatures(
        self,
        address: str,
        limit: int = 100,
        before: Optional[str] = None
    ) -> List[SignatureRecord]:
        """
        Fetch one page of signatures with getSignaturesForAddress.

        The before cursor is passed through untouched.
        """
        if not self.validate_address(address):
            raise InvalidAddress(address)

        if limit < 1 or limit > MAX_SIGNATURES_LIMIT:
            raise InvalidRequest(f"Limit must be between 1 and {MAX_SIGNATURES_LIMIT}")

        options: Dict[str, Any] = {"limit": limit}
        if before:
            options["before"] = before

        logger.debug("[RPC] getSignaturesForAddress %s limit=%s before=%s", address, limit, before)
        try:
            result = await self._rpc_call("getSignaturesForAddress", [address, options])
        except RemoteIndexerError as e:
            if e.code == INVALID_PARAMS_CODE and before is None:
                raise InvalidAddress(address) from e
            raise

        if result is None:
            return []
        if not isinstance(result, list):
            raise ProtocolError(
                f"getSignaturesForAddress returned {type(result).__name__}, expected a list"
            )

        try:
            return [SignatureRecord.model_validate(entry) for entry in result]
        except ValidationError as e:
            raise ProtocolError(f"Malformed signature record: {e}") from e

    def validate_address(self, address: str) -> bool:
        return is_valid_solana_address(address)
