"""
Position Database

Stores the monitored position snapshot and the last indexed block.
"""

import asyncio
import json
import sqlite3
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, TypeVar

from ..config import config
from ..models.position import Position
from .storage import Storage

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Database connection settings
DB_TIMEOUT = 10.0  # seconds
DB_RETRIES = 3
DB_RETRY_BACKOFF = 0.5  # seconds

LAST_BLOCK_KEY = "last_block_number"


class SqlitePositionStorage(Storage):
    """
    SQLite storage for the position snapshot.

    Tracks:
    - Every open position the monitor knows about
    - The block number the snapshot was taken at
    """

    def __init__(self, db_path: Path = None):
        self.db_path = db_path or config.positions_db_path
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create database directory: {e}")
            raise
        self._init_db()

    def _execute_with_retry(
        self,
        operation: Callable[[], T],
        retries: int = DB_RETRIES,
        backoff: float = DB_RETRY_BACKOFF,
    ) -> T:
        """
        Execute a database operation with retry logic for locked database.

        Raises:
            sqlite3.Error: If all retries fail
        """
        last_error = None
        for attempt in range(retries):
            try:
                return operation()
            except sqlite3.OperationalError as e:
                last_error = e
                if "locked" in str(e).lower() and attempt < retries - 1:
                    wait_time = backoff * (2 ** attempt)
                    logger.warning(
                        f"Database locked, retrying in {wait_time:.1f}s "
                        f"({attempt + 1}/{retries})"
                    )
                    time.sleep(wait_time)
                    continue
                raise
            except sqlite3.Error as e:
                logger.error(f"Database error: {e}")
                raise
        raise last_error

    def _init_db(self):
        """Initialize database schema."""
        try:
            with sqlite3.connect(self.db_path, timeout=DB_TIMEOUT) as conn:
                conn.execute("PRAGMA journal_mode=WAL")

                conn.execute("""
                    CREATE TABLE IF NOT EXISTS positions (
                        position_key TEXT PRIMARY KEY,
                        user_address TEXT NOT NULL,
                        pool_id TEXT NOT NULL,
                        collateral_asset TEXT NOT NULL,
                        debt_asset TEXT NOT NULL,
                        data TEXT NOT NULL,
                        block_number INTEGER NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_positions_user
                    ON positions(user_address)
                """)

                conn.execute("""
                    CREATE TABLE IF NOT EXISTS service_state (
                        key TEXT PRIMARY KEY,
                        value TEXT,
                        updated_at TEXT NOT NULL
                    )
                """)

                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize position database: {e}")
            raise

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    async def save(self, positions: Dict[int, Position], block_number: int):
        """Replace the stored snapshot in a single transaction."""
        now = datetime.now(timezone.utc).isoformat()
        rows = [
            (
                f"{key:016x}",
                hex(pos.user_address),
                hex(pos.pool_id),
                hex(pos.collateral.address),
                hex(pos.debt.address),
                json.dumps(pos.to_dict()),
                block_number,
                now,
            )
            for key, pos in positions.items()
        ]

        def operation():
            with sqlite3.connect(self.db_path, timeout=DB_TIMEOUT) as conn:
                conn.execute("DELETE FROM positions")
                conn.executemany("""
                    INSERT INTO positions (
                        position_key, user_address, pool_id,
                        collateral_asset, debt_asset, data,
                        block_number, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, rows)
                conn.execute("""
                    INSERT INTO service_state (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """, (LAST_BLOCK_KEY, str(block_number), now))
                conn.commit()

        # sqlite3 blocks, and so does the lock backoff
        await asyncio.to_thread(self._execute_with_retry, operation)
        logger.debug(f"Saved {len(rows)} positions at block {block_number}")

    def load(self) -> Tuple[Dict[int, Position], Optional[int]]:
        def operation():
            with sqlite3.connect(self.db_path, timeout=DB_TIMEOUT) as conn:
                position_rows = conn.execute(
                    "SELECT position_key, data FROM positions"
                ).fetchall()
                state_row = conn.execute(
                    "SELECT value FROM service_state WHERE key = ?", (LAST_BLOCK_KEY,)
                ).fetchone()
            return position_rows, state_row

        position_rows, state_row = self._execute_with_retry(operation)

        positions: Dict[int, Position] = {}
        for position_key, data in position_rows:
            try:
                position = Position.from_dict(json.loads(data))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping unreadable stored position {position_key}: {e}")
                continue
            positions[position.key] = position

        block_number = int(state_row[0]) if state_row else None
        logger.info(f"Loaded {len(positions)} positions from {self.db_path} (block {block_number})")
        return positions, block_number
