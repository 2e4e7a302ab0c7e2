"""
Client for the Advertly strategy API.
"""

from .strategy_client import StrategyClient

__all__ = ["StrategyClient"]
