"""
Backtesting: settle model answers against historical results.
"""
from .runner import Backtester
from .settlement import BETFAIR_PERCENTAGE, SettlementEngine

__all__ = ["Backtester", "BETFAIR_PERCENTAGE", "SettlementEngine"]
