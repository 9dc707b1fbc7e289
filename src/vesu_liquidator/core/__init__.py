# Core business logic
from .positions import PositionsMap
from .events import parse_liquidation_event
from .liquidation import LiquidationExecutor, wait_for_tx
from .distribution import RewardDistributor, Distribution, compute_split
from .monitor import MonitoringService, CHANNEL_CLOSED

__all__ = [
    "PositionsMap",
    "parse_liquidation_event",
    "LiquidationExecutor",
    "wait_for_tx",
    "RewardDistributor",
    "Distribution",
    "compute_split",
    "MonitoringService",
    "CHANNEL_CLOSED",
]
