"""
Starknet Models
===============

Plain data types for calls, events and receipts exchanged with the
Starknet JSON-RPC API, plus selector hashing.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

from eth_utils import keccak

MASK_250 = (1 << 250) - 1

# Finality / execution statuses reported by starknet_getTransactionStatus
ACCEPTED_STATUSES = {"ACCEPTED_ON_L2", "ACCEPTED_ON_L1"}
REJECTED_STATUS = "REJECTED"
SUCCEEDED = "SUCCEEDED"
REVERTED = "REVERTED"


def starknet_keccak(data: bytes) -> int:
    """Keccak-256 truncated to the 250 low bits."""
    return int.from_bytes(keccak(primitive=data), "big") & MASK_250


@lru_cache(maxsize=None)
def get_selector_from_name(name: str) -> int:
    """Entry point / event selector for a Cairo function or event name."""
    return starknet_keccak(name.encode("ascii"))


def parse_felt(value: Any) -> int:
    """Parse a felt from a hex string, decimal string or int."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if value.lower().startswith("0x"):
            return int(value, 16)
        return int(value)
    raise ValueError(f"Cannot parse felt from {value!r}")


@dataclass
class Call:
    """A single contract invocation, bundled into a transaction by an Account."""
    to: int
    selector: int
    calldata: List[int] = field(default_factory=list)

    @classmethod
    def from_name(cls, to: int, entry_point: str, calldata: Sequence[int]) -> "Call":
        return cls(to=to, selector=get_selector_from_name(entry_point), calldata=list(calldata))


@dataclass
class Event:
    """An event emitted during transaction execution."""
    from_address: int
    keys: List[int]
    data: List[int]

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> "Event":
        return cls(
            from_address=parse_felt(raw["from_address"]),
            keys=[parse_felt(k) for k in raw.get("keys", [])],
            data=[parse_felt(d) for d in raw.get("data", [])],
        )


@dataclass
class TransactionReceipt:
    """The parts of a transaction receipt the liquidator reads."""
    transaction_hash: int
    execution_status: str
    finality_status: str
    events: List[Event] = field(default_factory=list)
    revert_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.execution_status == SUCCEEDED

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> "TransactionReceipt":
        return cls(
            transaction_hash=parse_felt(raw["transaction_hash"]),
            execution_status=raw.get("execution_status", SUCCEEDED),
            finality_status=raw.get("finality_status", ""),
            events=[Event.from_rpc(e) for e in raw.get("events", [])],
            revert_reason=raw.get("revert_reason"),
        )
