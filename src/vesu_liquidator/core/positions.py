"""
Positions Map

Positions shared between the update consumer and the liquidability sweep.
Each key has its own lock so the sweep holding one position never blocks
updates to the others.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from ..db.storage import Storage
from ..models.position import Position

logger = logging.getLogger(__name__)


class PositionsMap:
    """Position key -> Position, with per-key locking. Never holds closed positions."""

    def __init__(self, positions: Dict[int, Position] = None):
        self._positions: Dict[int, Position] = {}
        self._locks: Dict[int, asyncio.Lock] = {}
        # Coroutines holding or waiting on each lock
        self._holders: Dict[int, int] = {}
        for position in (positions or {}).values():
            if not position.is_closed():
                self._positions[position.key] = position

    @classmethod
    def from_storage(cls, storage: Storage) -> "PositionsMap":
        positions, _ = storage.load()
        return cls(positions)

    @asynccontextmanager
    async def _locked(self, key: int) -> AsyncIterator[None]:
        """
        Hold the lock for ``key``. The lock is dropped by its last user once
        the key has no position.
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                if key not in self._positions:
                    self._locks.pop(key, None)

    @asynccontextmanager
    async def entry(self, key: int) -> AsyncIterator[Optional[Position]]:
        """
        Hold ``key`` while working on its position.

        Yields the position, or None if it was removed in the meantime.
        """
        if key not in self._positions and key not in self._holders:
            yield None
            return
        async with self._locked(key):
            yield self._positions.get(key)

    async def upsert(self, position: Position) -> bool:
        """
        Insert or replace a position.

        Returns:
            False if the position is closed and was dropped instead
        """
        key = position.key
        async with self._locked(key):
            if position.is_closed():
                self._positions.pop(key, None)
                return False
            self._positions[key] = position
            return True

    def remove(self, key: int) -> Optional[Position]:
        # A held lock stays until its last user releases it
        if key not in self._holders:
            self._locks.pop(key, None)
        return self._positions.pop(key, None)

    def get(self, key: int) -> Optional[Position]:
        return self._positions.get(key)

    def keys(self) -> List[int]:
        """Snapshot of the current keys."""
        return list(self._positions.keys())

    def snapshot(self) -> Dict[int, Position]:
        return dict(self._positions)

    def is_empty(self) -> bool:
        return not self._positions

    def __contains__(self, key: int) -> bool:
        return key in self._positions

    def __len__(self) -> int:
        return len(self._positions)
