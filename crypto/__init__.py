"""
Crypto strategy backtesting module.

Replays Binance OHLCV candles through DCA, Grid, Technical and other
signal strategies with a single-position fee-aware simulator.

Modules:
- exchange: Binance REST client for market data
- backtesting: strategies, simulator, result aggregation, engine, CLI
"""

__version__ = "0.1.0"

from crypto.backtesting import (
    BacktestConfig,
    BacktestEngine,
    BacktestResult,
    Simulator,
    StrategySpec,
    StrategyType,
    create_strategy,
    run_backtest,
)

__all__ = [
    "BacktestConfig",
    "BacktestEngine",
    "BacktestResult",
    "Simulator",
    "StrategySpec",
    "StrategyType",
    "create_strategy",
    "run_backtest",
]
