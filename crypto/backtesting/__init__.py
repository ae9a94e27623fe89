"""
Crypto Backtesting Pipeline

Replays historical OHLCV candles through a signal strategy with a
single-position, fee-aware simulator and reduces the trades into summary
statistics (win rate, profit factor, drawdown, Sharpe ratio).

Module Structure:
    models          - Candle, Position, Trade, CandleSeries, Signal
    errors          - BacktestError hierarchy
    indicators      - SMA, EMA, RSI, MACD, Bollinger Bands
    strategies      - DCA, Grid, Technical, Momentum, Candlestick, Ensemble
    simulation      - Simulator state machine, cancellation
    analytics       - BacktestResult aggregation, JSON/CSV export
    data_providers  - CandleSource protocol + Binance and synthetic sources
    config          - BacktestConfig
    engine          - BacktestEngine orchestrator (single and batch runs)
    runners         - CLI entry point
"""

__version__ = '0.1.0'

from crypto.backtesting.errors import (
    BacktestCancelledError,
    BacktestError,
    DataSourceError,
    InsufficientHistoryError,
    InvalidConfigurationError,
)
from crypto.backtesting.models import (
    Candle,
    CandleSeries,
    DataOrigin,
    ExitReason,
    Position,
    Signal,
    SimulationState,
    Trade,
)
from crypto.backtesting.strategies import (
    Strategy,
    StrategySpec,
    StrategyType,
    create_strategy,
)
from crypto.backtesting.analytics import BacktestResult, ResultAggregator
from crypto.backtesting.simulation import CancellationToken, SimulationOutcome, Simulator, run_backtest
from crypto.backtesting.config import BacktestConfig
from crypto.backtesting.engine import BacktestEngine, BacktestJob, BacktestOutcome

__all__ = [
    'BacktestCancelledError',
    'BacktestError',
    'DataSourceError',
    'InsufficientHistoryError',
    'InvalidConfigurationError',
    'Candle',
    'CandleSeries',
    'DataOrigin',
    'ExitReason',
    'Position',
    'Signal',
    'SimulationState',
    'Trade',
    'Strategy',
    'StrategySpec',
    'StrategyType',
    'create_strategy',
    'BacktestResult',
    'ResultAggregator',
    'CancellationToken',
    'SimulationOutcome',
    'Simulator',
    'run_backtest',
    'BacktestConfig',
    'BacktestEngine',
    'BacktestJob',
    'BacktestOutcome',
]
