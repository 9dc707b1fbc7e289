"""Exception types raised by the liquidator.

The monitoring sweep classifies liquidation failures by message: anything
containing ``NOT_UNDERCOLLATERALIZED`` is a benign race and drops the
position, everything else is retried on the next tick.
"""

from typing import Optional

NOT_UNDERCOLLATERALIZED = "not-undercollateralized"


class LiquidatorError(Exception):
    """Base class for liquidator errors."""


class RpcError(LiquidatorError):
    """JSON-RPC error response or transport failure."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        self.message = message
        if code is None:
            super().__init__(message)
        else:
            super().__init__(f"RPC error {code}: {message}")


class TransactionRevertedError(LiquidatorError):
    """Raised when a transaction is rejected or reverts on-chain."""

    def __init__(self, tx_hash: int, reason: Optional[str] = None):
        self.tx_hash = tx_hash
        self.reason = reason or "unknown reason"
        super().__init__(f"Transaction {tx_hash:#x} failed: {self.reason}")


class TransactionTimeoutError(LiquidatorError):
    """Raised when a transaction is not confirmed after all polling attempts."""

    def __init__(self, tx_hash: int, attempts: int):
        self.tx_hash = tx_hash
        self.attempts = attempts
        super().__init__(
            f"Transaction {tx_hash:#x} not confirmed after {attempts} attempts"
        )


class MissingPriceError(LiquidatorError):
    """Raised when no oracle price is known for an asset."""

    def __init__(self, asset: str):
        self.asset = asset
        super().__init__(f"No price available for asset {asset}")


class MalformedResponseError(LiquidatorError):
    """Raised when a Torii GraphQL response does not have the expected shape."""


class MonitoringStoppedError(LiquidatorError):
    """Raised when the position update channel closes."""
