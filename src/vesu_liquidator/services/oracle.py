"""
Latest Oracle Prices

Shared price table written by the price ingestion task and read by the
monitor when it checks positions.
"""

import logging
from decimal import Decimal
from typing import Dict, Union

from ..errors import MissingPriceError

logger = logging.getLogger(__name__)


class LatestOraclePrices:
    """Asset name -> latest USD price. Names are case-insensitive."""

    def __init__(self, prices: Dict[str, Union[Decimal, int, str]] = None):
        self._prices: Dict[str, Decimal] = {}
        for name, price in (prices or {}).items():
            self.set_price(name, price)

    def set_price(self, asset: str, price: Union[Decimal, int, str]):
        self._prices[asset.lower()] = Decimal(price)

    def get_price(self, asset: str) -> Decimal:
        """
        Raises:
            MissingPriceError: if no price has been received for ``asset``
        """
        try:
            return self._prices[asset.lower()]
        except KeyError:
            raise MissingPriceError(asset)

    def __contains__(self, asset: str) -> bool:
        return asset.lower() in self._prices

    def __len__(self) -> int:
        return len(self._prices)
