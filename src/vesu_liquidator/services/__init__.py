from .oracle import LatestOraclePrices

__all__ = ["LatestOraclePrices"]
