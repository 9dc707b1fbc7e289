"""
Storage Interface

Where the monitor snapshots its positions after every accepted update.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from ..models.position import Position


class Storage(ABC):
    """Persistence backend for the position snapshot."""

    @abstractmethod
    async def save(self, positions: Dict[int, Position], block_number: int):
        """Replace the stored snapshot with ``positions`` as seen at ``block_number``."""

    @abstractmethod
    def load(self) -> Tuple[Dict[int, Position], Optional[int]]:
        """Return the last snapshot and its block number (None if never saved)."""
