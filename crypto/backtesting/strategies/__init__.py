"""
Backtest signal strategies.
"""

from crypto.backtesting.strategies.base import Strategy
from crypto.backtesting.strategies.candlestick import CandlestickStrategy, detect_pattern
from crypto.backtesting.strategies.dca import DCAStrategy
from crypto.backtesting.strategies.ensemble import EnsembleStrategy
from crypto.backtesting.strategies.grid import GridStrategy
from crypto.backtesting.strategies.momentum import MomentumStrategy
from crypto.backtesting.strategies.technical import TechnicalStrategy
from crypto.backtesting.strategies.factory import (
    StrategySpec,
    StrategyType,
    create_strategy,
    parse_strategy_type,
)

__all__ = [
    "Strategy",
    "CandlestickStrategy",
    "DCAStrategy",
    "EnsembleStrategy",
    "GridStrategy",
    "MomentumStrategy",
    "TechnicalStrategy",
    "StrategySpec",
    "StrategyType",
    "create_strategy",
    "detect_pattern",
    "parse_strategy_type",
]
