"""
Position Models
===============

A borrower's position in a Vesu pool, and the checks the monitor runs
against it.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List

from eth_utils import keccak

from ..errors import RpcError
from .starknet import Call
from .u256 import U256

if TYPE_CHECKING:
    from ..api.rpc import StarknetRpcClient
    from ..services.oracle import LatestOraclePrices


@dataclass
class Asset:
    """One side (collateral or debt) of a position."""
    name: str
    address: int
    decimals: int
    amount: Decimal = Decimal(0)

    def scale(self, raw: int) -> Decimal:
        """Convert an on-chain integer amount to token units."""
        return Decimal(raw) / (Decimal(10) ** self.decimals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": hex(self.address),
            "decimals": self.decimals,
            "amount": str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        return cls(
            name=data["name"],
            address=int(data["address"], 16),
            decimals=int(data["decimals"]),
            amount=Decimal(data["amount"]),
        )


@dataclass
class Position:
    """A Vesu position (pool, user, collateral/debt pair)."""
    pool_id: int
    user_address: int
    collateral: Asset
    debt: Asset
    lltv: Decimal

    @property
    def key(self) -> int:
        """Stable 64-bit identifier for this position."""
        packed = b"".join(
            value.to_bytes(32, "big")
            for value in (
                self.pool_id,
                self.user_address,
                self.collateral.address,
                self.debt.address,
            )
        )
        return int.from_bytes(keccak(primitive=packed)[:8], "big")

    def is_closed(self) -> bool:
        """A position is closed once its debt is fully repaid."""
        return self.debt.amount == 0

    def ltv(self, prices: "LatestOraclePrices") -> Decimal:
        """
        Loan-to-value ratio from the latest oracle prices.

        Raises:
            MissingPriceError: if either asset has no price
        """
        collateral_value = self.collateral.amount * prices.get_price(self.collateral.name)
        debt_value = self.debt.amount * prices.get_price(self.debt.name)
        if collateral_value <= 0:
            return Decimal("Infinity") if debt_value > 0 else Decimal(0)
        return debt_value / collateral_value

    async def is_liquidable(self, prices: "LatestOraclePrices") -> bool:
        """Whether the LTV is above the pool's liquidation threshold."""
        if self.is_closed():
            return False
        return self.ltv(prices) > self.lltv

    async def update(self, rpc_client: "StarknetRpcClient", singleton_address: int):
        """
        Refresh collateral and debt amounts from the singleton contract.

        ``position_unsafe`` returns ``(Position, collateral: u256, debt: u256)``
        where the Position struct is ``(collateral_shares: u256, nominal_debt: u256)``.
        """
        result = await rpc_client.call(
            contract_address=singleton_address,
            entry_point="position_unsafe",
            calldata=[
                self.pool_id,
                self.collateral.address,
                self.debt.address,
                self.user_address,
            ],
        )
        if len(result) < 8:
            raise RpcError(f"position_unsafe returned {len(result)} felts, expected 8")

        collateral = U256(low=result[4], high=result[5])
        debt = U256(low=result[6], high=result[7])
        self.collateral.amount = self.collateral.scale(int(collateral))
        self.debt.amount = self.debt.scale(int(debt))

    def get_liquidate_call(self, liquidate_address: int, recipient: int) -> Call:
        """
        Build the ``liquidate`` call on the Liquidate contract.

        Swap routes are left empty so the seized collateral is sent as-is
        to ``recipient``.
        """
        min_collateral_to_receive = U256.zero()
        calldata: List[int] = [
            self.pool_id,
            self.collateral.address,
            self.debt.address,
            self.user_address,
            recipient,
            *min_collateral_to_receive.to_calldata(),
            1,  # full_liquidation
            0,  # liquidate_swap: empty span
            0,  # withdraw_swap: empty span
        ]
        return Call.from_name(liquidate_address, "liquidate", calldata)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_id": hex(self.pool_id),
            "user_address": hex(self.user_address),
            "collateral": self.collateral.to_dict(),
            "debt": self.debt.to_dict(),
            "lltv": str(self.lltv),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(
            pool_id=int(data["pool_id"], 16),
            user_address=int(data["user_address"], 16),
            collateral=Asset.from_dict(data["collateral"]),
            debt=Asset.from_dict(data["debt"]),
            lltv=Decimal(data["lltv"]),
        )

    def __str__(self) -> str:
        return (
            f"#{self.key:x} user={self.user_address:#x} "
            f"{self.collateral.amount} {self.collateral.name} / "
            f"{self.debt.amount} {self.debt.name}"
        )
