"""
Liquidation Event Parsing

Reads the realized proceeds of a liquidation out of its receipt.
"""

from typing import Iterable, Optional, Tuple

from ..models.starknet import Event, get_selector_from_name
from ..models.u256 import MAX_U128, U256

LIQUIDATION_EVENT = "Liquidation"


def liquidation_event_key() -> int:
    return get_selector_from_name(LIQUIDATION_EVENT)


def parse_liquidation_event(
    events: Iterable[Event],
    contract_address: int,
) -> Optional[Tuple[int, U256]]:
    """
    Find the ``Liquidation`` event emitted by ``contract_address``.

    Event payload: ``(collateral_asset, amount_low, amount_high)``.

    Args:
        events: Events from a transaction receipt, in emission order
        contract_address: Address of the Liquidate contract

    Returns:
        ``(collateral_asset_address, liquidated_amount)`` for the first
        matching event with a full payload, or None. Matching events with
        fewer than three data items are skipped; an amount limb wider than
        128 bits gives None.
    """
    event_key = liquidation_event_key()

    for event in events:
        if event.from_address != contract_address:
            continue
        if not event.keys or event.keys[0] != event_key:
            continue

        if len(event.data) < 3:
            continue
        collateral_asset, amount_low, amount_high = event.data[:3]
        if amount_low > MAX_U128 or amount_high > MAX_U128:
            return None
        return collateral_asset, U256(low=amount_low, high=amount_high)

    return None
