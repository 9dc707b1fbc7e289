"""Shared fixtures and test doubles."""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from vesu_liquidator.api.account import Account
from vesu_liquidator.config import Config
from vesu_liquidator.db.storage import Storage
from vesu_liquidator.models.position import Asset, Position
from vesu_liquidator.models.starknet import Call, Event, TransactionReceipt, get_selector_from_name
from vesu_liquidator.services.oracle import LatestOraclePrices

LIQUIDATE_ADDRESS = 0x1111
SINGLETON_ADDRESS = 0x2222
WORLD_ADDRESS = 0x3333
BOT_ADDRESS = 0xB07
ETH_ADDRESS = 0xE7
USDC_ADDRESS = 0x05DC


def make_position(
    user: int = 0xA11CE,
    collateral_amount: str = "1",
    debt_amount: str = "1000",
    lltv: str = "0.8",
    pool_id: int = 0x9001,
) -> Position:
    return Position(
        pool_id=pool_id,
        user_address=user,
        collateral=Asset("ETH", ETH_ADDRESS, 18, Decimal(collateral_amount)),
        debt=Asset("USDC", USDC_ADDRESS, 6, Decimal(debt_amount)),
        lltv=Decimal(lltv),
    )


def liquidation_event(amount_low: int, amount_high: int = 0, asset: int = ETH_ADDRESS) -> Event:
    return Event(
        from_address=LIQUIDATE_ADDRESS,
        keys=[get_selector_from_name("Liquidation")],
        data=[asset, amount_low, amount_high],
    )


class FakeAccount(Account):
    """Records executed multicalls and hands out sequential tx hashes."""

    def __init__(self, address: int = BOT_ADDRESS):
        self._address = address
        self.executed: List[List[Call]] = []
        self.errors: List[Exception] = []
        self._next_hash = 1

    @property
    def address(self) -> int:
        return self._address

    async def execute(self, calls: Sequence[Call]) -> int:
        if self.errors:
            raise self.errors.pop(0)
        self.executed.append(list(calls))
        tx_hash = self._next_hash
        self._next_hash += 1
        return tx_hash


class FakeRpc:
    """
    Stands in for StarknetRpcClient.

    ``amounts`` maps a user address to the raw (collateral, debt) returned by
    position_unsafe; unknown users get 1 ETH / 1000 USDC.
    """

    def __init__(self):
        self.amounts: Dict[int, Tuple[int, int]] = {}
        self.receipts: Dict[int, TransactionReceipt] = {}
        self.statuses: Dict[int, List[dict]] = {}
        self.calls: List[Tuple[int, str, List[int]]] = []
        self.call_error: Optional[Exception] = None

    async def call(self, contract_address, entry_point, calldata, block_id="latest"):
        if self.call_error is not None:
            raise self.call_error
        self.calls.append((contract_address, entry_point, list(calldata)))
        user = calldata[3]
        collateral, debt = self.amounts.get(user, (10 ** 18, 1000 * 10 ** 6))
        return [0, 0, 0, 0, collateral, 0, debt, 0]

    async def get_transaction_status(self, tx_hash):
        queued = self.statuses.get(tx_hash)
        if queued:
            return queued.pop(0)
        return {"finality_status": "ACCEPTED_ON_L2", "execution_status": "SUCCEEDED"}

    async def get_transaction_receipt(self, tx_hash):
        return self.receipts.get(
            tx_hash,
            TransactionReceipt(
                transaction_hash=tx_hash,
                execution_status="SUCCEEDED",
                finality_status="ACCEPTED_ON_L2",
            ),
        )


class MemoryStorage(Storage):
    def __init__(self, positions: Dict[int, Position] = None):
        self.initial = dict(positions or {})
        self.saves: List[Tuple[Dict[int, Position], int]] = []

    async def save(self, positions, block_number):
        self.saves.append((dict(positions), block_number))

    def load(self):
        return dict(self.initial), None


@pytest.fixture
def test_config(tmp_path) -> Config:
    return Config(
        rpc_url="http://rpc.test",
        torii_graphql_url="http://torii.test/graphql",
        liquidate_address=LIQUIDATE_ADDRESS,
        singleton_address=SINGLETON_ADDRESS,
        world_address=WORLD_ADDRESS,
        check_positions_interval_sec=3.5,
        warmup_delay_sec=0,
        tx_poll_interval_sec=0,
        tx_max_attempts=5,
        data_dir=tmp_path,
    )


@pytest.fixture
def prices() -> LatestOraclePrices:
    return LatestOraclePrices({"ETH": "2000", "USDC": "1"})


@pytest.fixture
def account() -> FakeAccount:
    return FakeAccount()


@pytest.fixture
def rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def positions_queue() -> asyncio.Queue:
    return asyncio.Queue()
