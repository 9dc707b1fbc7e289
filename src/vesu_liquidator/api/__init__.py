"""
API Package
===========

External clients: the Starknet node, the signing account and Torii.

Components:
- rpc.py: StarknetRpcClient (JSON-RPC over aiohttp)
- account.py: Account interface used to execute multicalls
- torii.py: ToriiClient for the redeem queue and highest score
"""

from .rpc import StarknetRpcClient
from .account import Account
from .torii import ToriiClient, RedeemEntry

__all__ = [
    "StarknetRpcClient",
    "Account",
    "ToriiClient",
    "RedeemEntry",
]
