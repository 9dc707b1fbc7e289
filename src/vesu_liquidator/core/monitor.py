"""
Monitoring Service

Main loop that:
1. Consumes position updates from the indexer and keeps the positions map current
2. Periodically checks every position against the latest oracle prices
3. Liquidates the ones that are under-collateralized
4. Distributes the proceeds to the next player in the redeem queue
"""

import asyncio
import logging
import time
from typing import Optional, Tuple

from ..api.account import Account
from ..api.rpc import StarknetRpcClient
from ..api.torii import ToriiClient
from ..config import Config
from ..db.storage import Storage
from ..errors import (
    MonitoringStoppedError,
    NOT_UNDERCOLLATERALIZED,
    TransactionTimeoutError,
)
from ..models.position import Position
from ..services.oracle import LatestOraclePrices
from .distribution import Distribution, RewardDistributor
from .events import parse_liquidation_event
from .liquidation import LiquidationExecutor
from .positions import PositionsMap

logger = logging.getLogger(__name__)

# Put on the positions queue by the producer when it stops
CHANNEL_CLOSED = None

PositionUpdate = Tuple[int, Position]


class Ticker:
    """
    Fixed-period timer. The first tick completes immediately; ticks missed
    while the caller was busy are skipped rather than replayed.
    """

    def __init__(self, period: float):
        self.period = period
        self._next: Optional[float] = None

    async def tick(self):
        loop = asyncio.get_running_loop()
        now = loop.time()
        if self._next is None:
            self._next = now

        delay = self._next - now
        if delay > 0:
            await asyncio.sleep(delay)

        now = loop.time()
        self._next += self.period
        if self._next < now:
            self._next = now + self.period


class MonitoringService:
    """
    Position monitor and liquidator.

    Each loop iteration waits for whichever comes first, the check timer or
    a position update, and handles exactly that one event. Positions are
    checked and liquidated one at a time within a tick.
    """

    def __init__(
        self,
        config: Config,
        rpc_client: StarknetRpcClient,
        account: Account,
        positions_receiver: "asyncio.Queue[Optional[PositionUpdate]]",
        latest_oracle_prices: LatestOraclePrices,
        storage: Storage,
        torii_client: ToriiClient = None,
    ):
        """
        Initialize the monitor.

        Args:
            config: Contract addresses and timing settings
            rpc_client: Starknet node client
            account: Account that signs liquidation and distribution transactions
            positions_receiver: Queue of (block_number, position) updates; the
                producer puts CHANNEL_CLOSED when it stops
            latest_oracle_prices: Shared price table
            storage: Snapshot backend, also used to seed the positions map
            torii_client: Redeem queue client (defaults to config.torii_graphql_url)
        """
        self.config = config
        self.rpc_client = rpc_client
        self.account = account
        self.positions_receiver = positions_receiver
        self.latest_oracle_prices = latest_oracle_prices
        self.storage = storage
        self.positions = PositionsMap.from_storage(storage)

        self.executor = LiquidationExecutor(
            account=account,
            rpc_client=rpc_client,
            liquidate_address=config.liquidate_address,
            poll_interval=config.tx_poll_interval_sec,
            max_attempts=config.tx_max_attempts,
        )
        self.distributor = RewardDistributor(
            torii=torii_client or ToriiClient(config.torii_graphql_url),
            executor=self.executor,
            world_address=config.world_address,
            exact=config.exact_reward_split,
        )

        self._ticker = Ticker(config.check_positions_interval_sec)
        self._tick_task: Optional[asyncio.Task] = None
        self._recv_task: Optional[asyncio.Task] = None

    async def start(self):
        """Wait for prices and positions to be indexed, then run forever."""
        # Give the price and position indexers a head start
        await asyncio.sleep(self.config.warmup_delay_sec)
        logger.info("Monitoring service started")
        await self.run_forever()

    async def run_forever(self):
        """
        Main loop. Only returns by raising.

        Raises:
            MonitoringStoppedError: when the update queue is closed
        """
        try:
            while True:
                await self.run_once()
        finally:
            self.close()

    async def run_once(self):
        """Wait for the next tick or update and handle it."""
        if self._tick_task is None:
            self._tick_task = asyncio.ensure_future(self._ticker.tick())
        if self._recv_task is None:
            self._recv_task = asyncio.ensure_future(self.positions_receiver.get())

        done, _ = await asyncio.wait(
            {self._tick_task, self._recv_task},
            return_when=asyncio.FIRST_COMPLETED,
        )

        if self._tick_task in done:
            task, self._tick_task = self._tick_task, None
            task.result()
            await self.monitor_positions_liquidability()
            return

        task, self._recv_task = self._recv_task, None
        await self.handle_position_update(task.result())

    def close(self):
        """Cancel the pending timer and queue reads."""
        recv_task = self._recv_task
        if recv_task is not None and recv_task.done() and not recv_task.cancelled():
            update = recv_task.result()
            if update is not CHANNEL_CLOSED:
                block_number, position = update
                logger.warning(
                    f"[Monitoring] Dropping unprocessed update for position "
                    f"#{position.key:x} (block {block_number})"
                )

        for task in (self._tick_task, self._recv_task):
            if task is not None and not task.done():
                task.cancel()
        self._tick_task = None
        self._recv_task = None

    async def handle_position_update(self, update: Optional[PositionUpdate]):
        """Refresh an incoming position and store it unless it is closed."""
        if update is CHANNEL_CLOSED:
            raise MonitoringStoppedError("Monitoring stopped unexpectedly")

        block_number, new_position = update
        await new_position.update(self.rpc_client, self.config.singleton_address)

        if new_position.is_closed():
            if self.positions.remove(new_position.key) is not None:
                logger.info(f"[Monitoring] Position #{new_position.key:x} closed")
                await self.storage.save(self.positions.snapshot(), block_number)
            return

        await self.positions.upsert(new_position)
        await self.storage.save(self.positions.snapshot(), block_number)

    async def monitor_positions_liquidability(self):
        """Check every monitored position and liquidate the eligible ones."""
        if self.positions.is_empty():
            return

        positions_to_delete = []

        for key in self.positions.keys():
            async with self.positions.entry(key) as position:
                if position is None:
                    continue

                if not await position.is_liquidable(self.latest_oracle_prices):
                    continue
                logger.info(f"[Monitoring] Liquidatable position found #{key:x}!")

                logger.info("[Monitoring] Liquidating position...")
                try:
                    await self.liquidate_position(position)
                except TransactionTimeoutError:
                    raise
                except Exception as e:
                    if NOT_UNDERCOLLATERALIZED in str(e):
                        logger.warning("[Monitoring] Position was not under collateralized!")
                        positions_to_delete.append(key)
                        continue
                    logger.error(f"[Monitoring] Could not liquidate position #{key:x}: {e}")

                await position.update(self.rpc_client, self.config.singleton_address)
                if position.is_closed():
                    positions_to_delete.append(key)

        for key in positions_to_delete:
            self.positions.remove(key)

    async def liquidate_position(self, position: Position) -> Optional[Distribution]:
        """
        Liquidate a position and distribute the proceeds.

        Returns:
            The distribution, or None if there was nothing to distribute
        """
        started_at = time.monotonic()

        receipt = await self.executor.liquidate(position)
        tx_hash = receipt.transaction_hash
        logger.info(
            f"[Monitoring] Liquidated position #{position.key:x}! "
            f"(tx {tx_hash:#066x}) - {time.monotonic() - started_at:.2f}s"
        )

        proceeds = parse_liquidation_event(receipt.events, self.config.liquidate_address)
        if proceeds is None:
            logger.warning(
                f"[Distribution] Could not find or parse Liquidation event in tx {tx_hash:#x}"
            )
            return None

        collateral_asset, total_earnings = proceeds
        return await self.distributor.distribute(collateral_asset, total_earnings)
