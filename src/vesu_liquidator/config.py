"""
Configuration for the Vesu Liquidator

All settings in one place for easy tuning.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os

from dotenv import load_dotenv

_project_root = Path(__file__).parent.parent.parent
_env_path = _project_root / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def parse_address(value: str) -> int:
    """Parse a hex (0x...) or decimal felt string into an int."""
    value = value.strip()
    if value.lower().startswith("0x"):
        return int(value, 16)
    return int(value)


@dataclass
class Config:
    """All configuration settings."""

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------
    rpc_url: str = "http://localhost:5050/rpc"
    torii_graphql_url: str = "http://localhost:8080/graphql"

    # -------------------------------------------------------------------------
    # Contracts
    # -------------------------------------------------------------------------
    liquidate_address: int = 0
    singleton_address: int = 0
    # Receives whatever is left of the proceeds after the player's share
    world_address: int = 0

    # -------------------------------------------------------------------------
    # Timing (seconds)
    # -------------------------------------------------------------------------
    check_positions_interval_sec: float = 3.5
    warmup_delay_sec: float = 4.0

    # Transaction confirmation polling
    tx_poll_interval_sec: float = 1.0
    tx_max_attempts: int = 120

    # -------------------------------------------------------------------------
    # API Settings
    # -------------------------------------------------------------------------
    max_retries: int = 3
    rate_limit_backoff_sec: float = 2.0

    # -------------------------------------------------------------------------
    # Rewards
    # -------------------------------------------------------------------------
    # False keeps the double-precision split; True uses integer division
    exact_reward_split: bool = False

    # -------------------------------------------------------------------------
    # Database Paths
    # -------------------------------------------------------------------------
    data_dir: Path = field(default_factory=lambda: _project_root / "data")

    @property
    def positions_db_path(self) -> Path:
        return self.data_dir / "positions.db"

    @classmethod
    def from_env(cls, prefix: str = "VESU_") -> "Config":
        """
        Build a Config from environment variables.

        Every field can be overridden with ``<prefix><FIELD_NAME>``, e.g.
        ``VESU_RPC_URL`` or ``VESU_LIQUIDATE_ADDRESS``. Unset variables keep
        the defaults above.
        """
        cfg = cls()

        def env(name: str) -> Optional[str]:
            value = os.environ.get(f"{prefix}{name.upper()}")
            return value if value else None

        for name in ("rpc_url", "torii_graphql_url"):
            value = env(name)
            if value:
                setattr(cfg, name, value)

        for name in ("liquidate_address", "singleton_address", "world_address"):
            value = env(name)
            if value:
                setattr(cfg, name, parse_address(value))

        for name in (
            "check_positions_interval_sec",
            "warmup_delay_sec",
            "tx_poll_interval_sec",
            "rate_limit_backoff_sec",
        ):
            value = env(name)
            if value:
                setattr(cfg, name, float(value))

        for name in ("tx_max_attempts", "max_retries"):
            value = env(name)
            if value:
                setattr(cfg, name, int(value))

        value = env("exact_reward_split")
        if value:
            cfg.exact_reward_split = value.lower() in ("1", "true", "yes")

        value = env("data_dir")
        if value:
            cfg.data_dir = Path(value)

        return cfg


# Global config instance
config = Config.from_env()
