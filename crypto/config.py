"""
Configuration for the crypto backtesting module.

Defines symbols, timeframes, simulation defaults and data source limits.
"""

from typing import Dict

# =============================================================================
# EXCHANGE CONFIGURATION
# =============================================================================

# Maximum candles returned by a single klines call.
# No pagination: longer ranges are truncated to this many candles.
BINANCE_KLINES_LIMIT: int = 1000

# Request timeout for market data calls (seconds)
REQUEST_TIMEOUT_SECONDS: int = 30

# =============================================================================
# SYMBOLS
# =============================================================================

# Format: Binance concatenated pair ("BTCUSDT").
# "BTC/USDT" and "BTC-USDT" are accepted and normalised.
DEFAULT_SYMBOL: str = "BTCUSDT"

# =============================================================================
# TIMEFRAMES
# =============================================================================

# Binance kline intervals and their length in seconds
TIMEFRAME_SECONDS: Dict[str, int] = {
    "1m": 60,
    "3m": 180,
    "5m": 300,
    "15m": 900,
    "30m": 1800,
    "1h": 3600,
    "2h": 7200,
    "4h": 14400,
    "6h": 21600,
    "8h": 28800,
    "12h": 43200,
    "1d": 86400,
    "3d": 259200,
    "1w": 604800,
}

DEFAULT_TIMEFRAME: str = "1h"

# =============================================================================
# SIMULATION DEFAULTS
# =============================================================================

# Starting cash for a backtest run (USD)
DEFAULT_INITIAL_BALANCE: float = 10000.0

# Flat proportional fee charged on each leg (0.1% = Binance spot taker)
DEFAULT_FEE_RATE: float = 0.001

# Share of current balance committed on each entry; the rest stays as cash
POSITION_SIZE_FRACTION: float = 0.95

# Number of previous candles handed to the strategy as history
HISTORY_WINDOW: int = 100

# Sharpe annualisation assumes daily returns (252 trading days).
# Trades here are interval based, so the ratio is an approximation.
SHARPE_ANNUALIZATION_DAYS: int = 252

# =============================================================================
# SYNTHETIC DATA
# =============================================================================

# Random walk reference price and per-step volatility
SYNTHETIC_START_PRICE: float = 50000.0
SYNTHETIC_VOLATILITY: float = 0.02

# =============================================================================
# BATCH RUNS
# =============================================================================

# Worker threads used when running many backtests
MAX_PARALLEL_BACKTESTS: int = 4
