"""Tests for the SQLite snapshot storage."""

import asyncio
import sqlite3

from vesu_liquidator.db.position_db import SqlitePositionStorage

from .conftest import make_position


async def test_save_then_load(tmp_path):
    storage = SqlitePositionStorage(tmp_path / "positions.db")
    a, b = make_position(user=1, debt_amount="12.5"), make_position(user=2)

    await storage.save({a.key: a, b.key: b}, block_number=100)
    positions, block_number = SqlitePositionStorage(tmp_path / "positions.db").load()

    assert block_number == 100
    assert positions == {a.key: a, b.key: b}


async def test_save_replaces_previous_snapshot(tmp_path):
    storage = SqlitePositionStorage(tmp_path / "positions.db")
    a, b = make_position(user=1), make_position(user=2)

    await storage.save({a.key: a, b.key: b}, block_number=100)
    await storage.save({b.key: b}, block_number=101)

    positions, block_number = storage.load()
    assert list(positions) == [b.key]
    assert block_number == 101


def test_empty_database(tmp_path):
    positions, block_number = SqlitePositionStorage(tmp_path / "nested" / "positions.db").load()
    assert positions == {}
    assert block_number is None


async def test_unreadable_rows_are_skipped(tmp_path):
    db_path = tmp_path / "positions.db"
    storage = SqlitePositionStorage(db_path)
    good = make_position()
    await storage.save({good.key: good}, block_number=5)

    with sqlite3.connect(db_path) as conn:
        conn.execute("""
            INSERT INTO positions VALUES ('bad', '0x1', '0x2', '0x3', '0x4', '{}', 5, 'now')
        """)

    positions, _ = storage.load()
    assert list(positions) == [good.key]


async def test_save_waits_for_lock_without_blocking_the_loop(tmp_path):
    db_path = tmp_path / "positions.db"
    storage = SqlitePositionStorage(db_path)
    position = make_position()

    blocker = sqlite3.connect(db_path, isolation_level=None)
    blocker.execute("BEGIN EXCLUSIVE")

    beats = 0

    async def heartbeat():
        nonlocal beats
        while True:
            await asyncio.sleep(0.02)
            beats += 1

    async def release_lock():
        await asyncio.sleep(0.3)
        blocker.execute("COMMIT")
        blocker.close()

    heartbeat_task = asyncio.ensure_future(heartbeat())
    release_task = asyncio.ensure_future(release_lock())
    try:
        await storage.save({position.key: position}, block_number=7)
    finally:
        heartbeat_task.cancel()
    await release_task

    assert beats >= 5
    positions, block_number = storage.load()
    assert list(positions) == [position.key]
    assert block_number == 7
