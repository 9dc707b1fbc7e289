"""
Starknet JSON-RPC Client

Single responsibility: talk to a Starknet node over JSON-RPC 2.0.
"""

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from ..config import config
from ..errors import RpcError
from ..models.starknet import TransactionReceipt, get_selector_from_name, parse_felt

logger = logging.getLogger(__name__)

# starknet_* error code for an unknown transaction hash
TXN_HASH_NOT_FOUND = 29


class StarknetRpcClient:
    """
    Async client for a Starknet node.

    Handles:
    - Read-only contract calls
    - Transaction status and receipt lookups
    - Retries on transport errors and rate limiting
    """

    def __init__(
        self,
        url: str = None,
        max_retries: int = None,
        backoff_sec: float = None,
    ):
        self.url = url or config.rpc_url
        self.max_retries = max_retries if max_retries is not None else config.max_retries
        self.backoff_sec = backoff_sec if backoff_sec is not None else config.rate_limit_backoff_sec
        self._session: Optional[aiohttp.ClientSession] = None
        self._ids = itertools.count(1)

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        """Create session if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession()

    async def close(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _request(self, method: str, params: Any) -> Any:
        """
        Send a JSON-RPC request with retry logic.

        Args:
            method: RPC method name (e.g. "starknet_call")
            params: Method params (dict or list)

        Returns:
            The ``result`` member of the response

        Raises:
            RpcError: on an error response or when retries are exhausted
        """
        await self._ensure_session()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                async with self._session.post(
                    self.url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                ) as response:
                    if response.status == 429:
                        backoff = self.backoff_sec * (2 ** attempt)
                        logger.warning(f"Rate limited on {method}, backing off {backoff}s")
                        await asyncio.sleep(backoff)
                        last_error = RpcError(f"{method}: rate limited")
                        continue

                    if response.status != 200:
                        raise RpcError(f"{method}: HTTP {response.status}: {await response.text()}")

                    body = await response.json()

            except aiohttp.ClientError as e:
                logger.error(f"RPC request error on {method} (attempt {attempt + 1}): {e}")
                last_error = e
                if attempt < self.max_retries:
                    await asyncio.sleep(self.backoff_sec)
                continue

            if "error" in body:
                error = body["error"]
                raise RpcError(error.get("message", str(error)), code=error.get("code"))

            return body.get("result")

        raise RpcError(f"{method}: giving up after {self.max_retries + 1} attempts: {last_error}")

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------

    async def call(
        self,
        contract_address: int,
        entry_point: str,
        calldata: Sequence[int],
        block_id: Any = "latest",
    ) -> List[int]:
        """Call a view function and return the result felts."""
        params = {
            "request": {
                "contract_address": hex(contract_address),
                "entry_point_selector": hex(get_selector_from_name(entry_point)),
                "calldata": [hex(x) for x in calldata],
            },
            "block_id": block_id,
        }
        result = await self._request("starknet_call", params)
        return [parse_felt(x) for x in result]

    async def block_number(self) -> int:
        return parse_felt(await self._request("starknet_blockNumber", []))

    async def get_transaction_status(self, tx_hash: int) -> Dict[str, Any]:
        """
        Returns:
            Dict with ``finality_status`` and, once executed, ``execution_status``
            (and ``failure_reason`` for reverted transactions)
        """
        return await self._request(
            "starknet_getTransactionStatus", {"transaction_hash": hex(tx_hash)}
        )

    async def get_transaction_receipt(self, tx_hash: int) -> TransactionReceipt:
        raw = await self._request(
            "starknet_getTransactionReceipt", {"transaction_hash": hex(tx_hash)}
        )
        return TransactionReceipt.from_rpc(raw)
