"""
Ghost Pool Ledger Client

Async JSON-RPC 2.0 client for the ledger node, built on httpx.

Failures are classified into the client's error taxonomy:
    - transport errors, 5xx, node-unhealthy  -> NetworkError (retryable)
    - HTTP 429 / "Too Many Requests"         -> RateLimitedError (retryable)
    - "Blockhash not found", expired height  -> StaleBlockhashError (retryable)
    - insufficient funds / lamports          -> InsufficientFundsError
    - anything else the node rejects         -> ProtocolError

Read-only calls go through the retry policy. sendTransaction does not: a
transient submission failure is retried one level up with a fresh request.
"""

from __future__ import annotations
import base64
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ghostpool.config import RpcConfig
from ghostpool.constants import PROGRAM_ERRORS
from ghostpool.core.types import Pubkey
from ghostpool.errors import (
    GhostPoolError,
    InsufficientFundsError,
    NetworkError,
    ProtocolError,
    RateLimitedError,
    StaleBlockhashError,
    Stage,
)
from ghostpool.network.retry import RetryPolicy

logger = logging.getLogger(__name__)

# JSON-RPC error codes of the ledger node
RPC_SEND_SIMULATION_FAILED = -32002
RPC_NODE_UNHEALTHY = -32005
RPC_BLOCK_NOT_AVAILABLE = -32004

_STALE_MARKERS = ("blockhash not found", "block height exceeded", "blockhashnotfound")
_RATE_MARKERS = ("429", "too many requests")
_FUNDS_MARKERS = ("insufficient funds", "insufficient lamports", "insufficientfunds")


# ==============================================================================
# ERROR CLASSIFICATION
# ==============================================================================

def _matches(text: str, markers: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in markers)


def describe_transaction_error(err: Any) -> str:
    """Readable form of a transaction `err` value, naming pool program errors."""
    if isinstance(err, dict) and "InstructionError" in err:
        index, detail = err["InstructionError"]
        if isinstance(detail, dict) and "Custom" in detail:
            code = detail["Custom"]
            name = PROGRAM_ERRORS.get(code, "custom error")
            return f"instruction {index}: {name} ({code})"
        return f"instruction {index}: {detail}"
    return str(err)


def classify_transaction_error(
    err: Any,
    logs: Optional[List[str]] = None,
    stage: Optional[Stage] = None,
) -> GhostPoolError:
    """Error for a failed simulation or execution result."""
    text = f"{err} {' '.join(logs or [])}"
    if _matches(text, _STALE_MARKERS):
        return StaleBlockhashError(f"Blockhash expired: {err}", stage)
    if _matches(text, _FUNDS_MARKERS):
        return InsufficientFundsError(f"Insufficient funds: {describe_transaction_error(err)}", stage)
    return ProtocolError(
        f"Rejected: {describe_transaction_error(err)}",
        stage=stage,
        details={"err": err, "logs": list(logs or [])},
    )


def classify_rpc_error(error: Dict[str, Any], stage: Optional[Stage] = None) -> GhostPoolError:
    """Error for a JSON-RPC `error` object."""
    code = error.get("code")
    message = str(error.get("message", ""))
    data = error.get("data") or {}

    if _matches(message, _RATE_MARKERS):
        return RateLimitedError(message, stage)
    if _matches(message, _STALE_MARKERS):
        return StaleBlockhashError(message, stage)
    if code == RPC_SEND_SIMULATION_FAILED and isinstance(data, dict):
        return classify_transaction_error(data.get("err", message), data.get("logs"), stage)
    if _matches(message, _FUNDS_MARKERS):
        return InsufficientFundsError(message, stage)
    if code in (RPC_NODE_UNHEALTHY, RPC_BLOCK_NOT_AVAILABLE):
        return NetworkError(message, stage=stage, details={"rpc_code": code})
    return ProtocolError(message, stage=stage, details={"rpc_code": code})


# ==============================================================================
# CLIENT
# ==============================================================================

class LedgerClient:
    """
    JSON-RPC ledger client.

    Usage:
        async with LedgerClient.from_config(rpc_config, retry) as ledger:
            data = await ledger.get_account_info(address)
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        commitment: str = "confirmed",
        retry: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.commitment = commitment
        self.retry = retry or RetryPolicy()
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._request_id = 0

    @classmethod
    def from_config(
        cls,
        config: RpcConfig,
        retry: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> LedgerClient:
        return cls(config.url, config.timeout_sec, config.commitment, retry, transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> LedgerClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ==========================================================================
    # Transport
    # ==========================================================================

    async def _call_once(self, method: str, params: list, stage: Optional[Stage]) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{method} timed out", stage=stage) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"{method} transport error: {exc}", stage=stage) from exc

        if response.status_code == 429:
            raise RateLimitedError(f"{method}: 429 Too Many Requests", stage)
        if response.status_code >= 500:
            raise NetworkError(f"{method}: HTTP {response.status_code}", stage=stage)
        if response.status_code != 200:
            raise ProtocolError(f"{method}: HTTP {response.status_code}", stage=stage)

        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkError(f"{method}: malformed JSON response", stage=stage) from exc

        if "error" in body:
            raise classify_rpc_error(body["error"], stage)
        return body.get("result")

    async def call(
        self,
        method: str,
        params: Optional[list] = None,
        stage: Optional[Stage] = None,
        retry: bool = True,
    ) -> Any:
        """Single JSON-RPC call, retried with backoff when `retry` is set."""
        params = params or []
        if not retry:
            return await self._call_once(method, params, stage)
        return await self.retry.run(
            lambda: self._call_once(method, params, stage), method, stage
        )

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_account_info(
        self, address: Pubkey, stage: Optional[Stage] = None
    ) -> Optional[bytes]:
        """Raw account data, or None when the account does not exist."""
        result = await self.call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
            stage,
        )
        value = result.get("value") if result else None
        if value is None:
            return None
        data, encoding = value["data"]
        if encoding != "base64":
            raise ProtocolError(f"Unexpected account encoding {encoding}", stage=stage)
        return base64.b64decode(data)

    async def get_latest_blockhash(self, stage: Optional[Stage] = None) -> Tuple[str, int]:
        """(blockhash, last_valid_block_height)"""
        result = await self.call("getLatestBlockhash", [{"commitment": self.commitment}], stage)
        value = result["value"]
        return value["blockhash"], value["lastValidBlockHeight"]

    async def get_block_height(self, stage: Optional[Stage] = None) -> int:
        return await self.call("getBlockHeight", [{"commitment": self.commitment}], stage)

    async def get_signature_statuses(
        self, signatures: Sequence[str], stage: Optional[Stage] = None
    ) -> List[Optional[dict]]:
        result = await self.call(
            "getSignatureStatuses",
            [list(signatures), {"searchTransactionHistory": True}],
            stage,
        )
        return result["value"]

    async def get_signatures_for_address(
        self, address: Pubkey, limit: int = 20, stage: Optional[Stage] = None
    ) -> List[dict]:
        return await self.call(
            "getSignaturesForAddress",
            [str(address), {"limit": limit, "commitment": self.commitment}],
            stage,
        )

    async def get_program_accounts(
        self,
        program_id: Pubkey,
        data_size: Optional[int] = None,
        memcmp: Optional[List[Tuple[int, bytes]]] = None,
        stage: Optional[Stage] = None,
    ) -> List[Tuple[Pubkey, bytes]]:
        """Accounts owned by `program_id`, optionally filtered by size and byte prefixes."""
        filters: List[dict] = []
        if data_size is not None:
            filters.append({"dataSize": data_size})
        for offset, raw in memcmp or []:
            filters.append({
                "memcmp": {"offset": offset, "bytes": base64.b64encode(raw).decode("ascii"),
                           "encoding": "base64"}
            })
        config: Dict[str, Any] = {"encoding": "base64", "commitment": self.commitment}
        if filters:
            config["filters"] = filters
        result = await self.call("getProgramAccounts", [str(program_id), config], stage)
        return [
            (Pubkey.from_base58(item["pubkey"]), base64.b64decode(item["account"]["data"][0]))
            for item in result
        ]

    # ==========================================================================
    # Transactions
    # ==========================================================================

    async def simulate_transaction(self, tx_base64: str, stage: Optional[Stage] = None) -> dict:
        """Simulation result value: {"err": ..., "logs": [...], ...}."""
        result = await self.call(
            "simulateTransaction",
            [tx_base64, {"encoding": "base64", "commitment": self.commitment, "sigVerify": False}],
            stage,
        )
        return result["value"]

    async def send_transaction(self, tx_base64: str, stage: Optional[Stage] = None) -> str:
        """Submit a signed transaction. Preflight is skipped; simulation is explicit."""
        signature = await self.call(
            "sendTransaction",
            [tx_base64, {"encoding": "base64", "skipPreflight": True,
                         "preflightCommitment": self.commitment}],
            stage,
            retry=False,
        )
        logger.info(f"Transaction sent: {signature}")
        return signature
