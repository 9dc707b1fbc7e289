"""
Liquidation Executor

Submits liquidation transactions and waits for them to be accepted.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from ..api.rpc import TXN_HASH_NOT_FOUND
from ..errors import RpcError, TransactionRevertedError, TransactionTimeoutError
from ..models.position import Position
from ..models.starknet import (
    ACCEPTED_STATUSES,
    REJECTED_STATUS,
    REVERTED,
    TransactionReceipt,
)

if TYPE_CHECKING:
    from ..api.account import Account
    from ..api.rpc import StarknetRpcClient

logger = logging.getLogger(__name__)


async def wait_for_tx(
    rpc_client: "StarknetRpcClient",
    tx_hash: int,
    poll_interval: float = 1.0,
    max_attempts: int = 120,
) -> TransactionReceipt:
    """
    Poll until ``tx_hash`` is accepted on L2 (or L1).

    Returns:
        The transaction receipt

    Raises:
        TransactionRevertedError: if the transaction is rejected or reverts
        TransactionTimeoutError: if it is still pending after ``max_attempts`` polls
    """
    for attempt in range(max_attempts):
        try:
            status = await rpc_client.get_transaction_status(tx_hash)
        except RpcError as e:
            # The node may not know about the transaction yet
            if e.code != TXN_HASH_NOT_FOUND:
                raise
            status = {}

        finality = status.get("finality_status")
        execution = status.get("execution_status")

        if finality == REJECTED_STATUS:
            raise TransactionRevertedError(tx_hash, status.get("failure_reason"))

        if finality in ACCEPTED_STATUSES:
            if execution == REVERTED:
                raise TransactionRevertedError(tx_hash, status.get("failure_reason"))
            receipt = await rpc_client.get_transaction_receipt(tx_hash)
            if receipt.execution_status == REVERTED:
                raise TransactionRevertedError(tx_hash, receipt.revert_reason)
            return receipt

        logger.debug(f"Tx {tx_hash:#x} pending ({finality}), attempt {attempt + 1}/{max_attempts}")
        await asyncio.sleep(poll_interval)

    raise TransactionTimeoutError(tx_hash, max_attempts)


class LiquidationExecutor:
    """Builds, submits and confirms liquidation transactions."""

    def __init__(
        self,
        account: "Account",
        rpc_client: "StarknetRpcClient",
        liquidate_address: int,
        poll_interval: float = 1.0,
        max_attempts: int = 120,
    ):
        self.account = account
        self.rpc_client = rpc_client
        self.liquidate_address = liquidate_address
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    async def execute(self, calls) -> TransactionReceipt:
        """Execute ``calls`` as one transaction and wait for confirmation."""
        tx_hash = await self.account.execute(calls)
        return await wait_for_tx(
            self.rpc_client,
            tx_hash,
            poll_interval=self.poll_interval,
            max_attempts=self.max_attempts,
        )

    async def liquidate(self, position: Position) -> TransactionReceipt:
        """
        Liquidate ``position``, sending the seized collateral to the bot's own account.

        Returns:
            The confirmed liquidation receipt
        """
        call = position.get_liquidate_call(
            self.liquidate_address,
            recipient=self.account.address,
        )
        return await self.execute([call])
