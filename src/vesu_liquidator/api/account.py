"""
Account Interface

The liquidator never signs anything itself; it hands calls to an Account
which bundles them into one transaction.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from ..models.starknet import Call


class Account(ABC):
    """A funded Starknet account able to execute multicalls."""

    @property
    @abstractmethod
    def address(self) -> int:
        """Address of the account contract."""

    @abstractmethod
    async def execute(self, calls: Sequence[Call]) -> int:
        """
        Sign and submit ``calls`` as a single transaction.

        Returns:
            The transaction hash

        Raises:
            Exception: if fee estimation or submission fails. The message
                carries the contract's revert reason when there is one.
        """
