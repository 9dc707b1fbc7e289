"""
Shared Data Models
==================

This package contains dataclasses used across the project.
"""

from .u256 import U256
from .starknet import Call, Event, TransactionReceipt, get_selector_from_name
from .position import Asset, Position

__all__ = [
    "U256",
    "Call",
    "Event",
    "TransactionReceipt",
    "get_selector_from_name",
    "Asset",
    "Position",
]
