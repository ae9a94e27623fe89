"""
Historical candle sources for backtesting.
"""

from crypto.backtesting.data_providers.base import (
    CandleSource,
    require_candles,
    timeframe_seconds,
    to_millis,
    to_utc_datetime,
)
from crypto.backtesting.data_providers.binance_provider import BinanceCandleSource
from crypto.backtesting.data_providers.synthetic_provider import SyntheticCandleSource

__all__ = [
    "CandleSource",
    "BinanceCandleSource",
    "SyntheticCandleSource",
    "require_candles",
    "timeframe_seconds",
    "to_millis",
    "to_utc_datetime",
]
