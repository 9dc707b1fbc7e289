"""
Vesu Liquidator
===============

Monitors Vesu positions, liquidates the under-collateralized ones and
shares the proceeds with the next player in the Torii redeem queue.
"""

__version__ = "0.1.0"
