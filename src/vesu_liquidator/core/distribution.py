"""
Reward Distribution

After a liquidation, the proceeds are split between the next player in the
redeem queue (proportionally to their score against the highest score)
and the world contract, in a single multicall.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import aiohttp

from ..errors import MalformedResponseError
from ..models.starknet import Call, parse_felt
from ..models.u256 import MAX_U128, U256

if TYPE_CHECKING:
    from ..api.torii import ToriiClient
    from .liquidation import LiquidationExecutor

logger = logging.getLogger(__name__)

# Lookup failures that skip the distribution instead of failing the sweep
TORII_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, MalformedResponseError)


@dataclass
class Distribution:
    """Outcome of a completed distribution."""
    player: str
    share: U256
    remainder: U256
    tx_hash: int


def compute_split(
    total: U256,
    player_score: int,
    highest_score: int,
    exact: bool = False,
) -> Tuple[U256, U256]:
    """
    Split ``total`` into the player's share and the remainder.

    The default path goes through double precision, so large amounts lose
    their low bits and the share always fits in the low limb. With
    ``exact=True`` the share is ``total * player_score // highest_score``.

    Args:
        total: Liquidated amount
        player_score: Score of the player being paid
        highest_score: Global highest score, must be non-zero

    Returns:
        (share, remainder) where remainder saturates at zero
    """
    if highest_score == 0:
        raise ZeroDivisionError("highest score is zero")

    if exact:
        share_int = int(total) * player_score // highest_score
        share = U256.from_int(min(share_int, (1 << 256) - 1))
    else:
        total_f = total.to_float()
        share_f = total_f * (float(player_score) / float(highest_score))
        # Float -> u128 conversion saturates at both ends
        if math.isnan(share_f) or share_f <= 0:
            share_low = 0
        elif share_f >= float(MAX_U128):
            share_low = MAX_U128
        else:
            share_low = int(share_f)
        share = U256(low=share_low, high=0)

    return share, total - share


def build_erc20_transfer_call(token_address: int, recipient: int, amount: U256) -> Call:
    """``transfer(recipient, amount_low, amount_high)`` on an ERC20 token."""
    return Call.from_name(token_address, "transfer", [recipient, *amount.to_calldata()])


class RewardDistributor:
    """Pays out liquidation proceeds to the redeem queue."""

    def __init__(
        self,
        torii: "ToriiClient",
        executor: "LiquidationExecutor",
        world_address: int,
        exact: bool = False,
    ):
        self.torii = torii
        self.executor = executor
        self.world_address = world_address
        self.exact = exact

    async def distribute(self, collateral_asset: int, total: U256) -> Optional[Distribution]:
        """
        Send the player's share and the remainder in one transaction.

        Queue and score lookups that fail or come back empty skip the
        distribution and return None. Errors while building or executing
        the transfers propagate.
        """
        try:
            redeemer = await self.torii.find_next_player_in_queue()
        except TORII_ERRORS as e:
            logger.warning(f"[Distribution] Could not read redeem queue: {e}")
            return None

        if redeemer is None:
            logger.info("[Distribution] No player in queue, keeping proceeds")
            return None
        try:
            player_address = parse_felt(redeemer.player)
        except ValueError:
            logger.warning(f"[Distribution] Player {redeemer.player!r} is not an address")
            return None
        logger.info(f"[Distribution] Found player in queue: {redeemer.player}")

        try:
            highest_score = await self.torii.get_highest_score()
        except TORII_ERRORS as e:
            logger.warning(f"[Distribution] Could not read highest score: {e}")
            return None

        if highest_score is None:
            highest_score = redeemer.score
        if highest_score == 0:
            logger.warning("[Distribution] Highest score is 0, cannot calculate proportion.")
            return None

        share, remainder = compute_split(total, redeemer.score, highest_score, exact=self.exact)

        logger.info(
            f"[Distribution] Player Score: {redeemer.score}, Highest Score: {highest_score}, "
            f"Total Earnings: {total}"
        )
        logger.info(f"[Distribution] Player Share: {share}, World Share: {remainder}")

        calls = [
            build_erc20_transfer_call(collateral_asset, player_address, share),
            build_erc20_transfer_call(collateral_asset, self.world_address, remainder),
        ]

        logger.info("[Distribution] Executing distribution multicall...")
        receipt = await self.executor.execute(calls)
        logger.info(
            f"[Distribution] Distribution complete! (tx {receipt.transaction_hash:#x})"
        )

        return Distribution(
            player=redeemer.player,
            share=share,
            remainder=remainder,
            tx_hash=receipt.transaction_hash,
        )
