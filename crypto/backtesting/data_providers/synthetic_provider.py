"""
Synthetic candle source.

Seeded random walk for demos, offline runs and explicit fallback when the
exchange is unreachable. Every series it returns is marked SYNTHETIC so the
result can never pass for a real market backtest.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional

import numpy as np

from crypto.backtesting.data_providers.base import timeframe_seconds, to_utc_datetime
from crypto.backtesting.errors import InvalidConfigurationError
from crypto.backtesting.models import Candle, CandleSeries, DataOrigin
from crypto.config import BINANCE_KLINES_LIMIT, SYNTHETIC_START_PRICE, SYNTHETIC_VOLATILITY
from crypto.exchange.binance_client import normalize_symbol

logger = logging.getLogger(__name__)


class SyntheticCandleSource:
    """
    CandleSource producing a random walk starting at a reference price.

    Each close moves by a uniform step in [-volatility/2, +volatility/2].
    The same seed always yields the same candles.

    Usage:
        source = SyntheticCandleSource(seed=42)
        series = source.load('BTCUSDT', '1h', start, end)
        assert series.synthetic
    """

    def __init__(
        self,
        start_price: float = SYNTHETIC_START_PRICE,
        volatility: float = SYNTHETIC_VOLATILITY,
        seed: Optional[int] = None,
        max_candles: int = BINANCE_KLINES_LIMIT,
    ):
        if start_price <= 0:
            raise InvalidConfigurationError(f"start_price must be positive, got {start_price}")
        if not 0 <= volatility < 2:
            raise InvalidConfigurationError(f"volatility must be in [0, 2), got {volatility}")
        if max_candles < 1:
            raise InvalidConfigurationError(f"max_candles must be >= 1, got {max_candles}")
        self.start_price = float(start_price)
        self.volatility = float(volatility)
        self.seed = seed
        self.max_candles = int(max_candles)

    def load(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> CandleSeries:
        start = to_utc_datetime(start)
        end = to_utc_datetime(end)
        if end <= start:
            raise InvalidConfigurationError(f"end ({end}) must be after start ({start})")
        step = timeframe_seconds(timeframe)

        # One candle per step across [start, end)
        wanted = int(math.ceil((end - start).total_seconds() / step))
        count = min(wanted, self.max_candles)
        candles = self.generate(start, step, count)

        logger.warning("Generated %d SYNTHETIC %s candles for %s (seed=%s)",
                       count, timeframe, symbol, self.seed)
        return CandleSeries(
            symbol=normalize_symbol(symbol),
            timeframe=timeframe,
            candles=tuple(candles),
            origin=DataOrigin.SYNTHETIC,
            truncated=wanted > count,
        )

    def generate(self, start: datetime, step_seconds: int, count: int) -> List[Candle]:
        """Build `count` candles spaced step_seconds apart from start."""
        rng = np.random.default_rng(self.seed)
        steps = (rng.random(count) - 0.5) * self.volatility
        closes = self.start_price * np.cumprod(1 + steps)
        opens = np.concatenate(([self.start_price], closes[:-1]))
        wicks = rng.random((2, count)) * self.volatility / 4
        highs = np.maximum(opens, closes) * (1 + wicks[0])
        lows = np.minimum(opens, closes) * (1 - wicks[1])
        volumes = rng.random(count) * 1_000_000

        return [
            Candle(
                timestamp=start + timedelta(seconds=step_seconds * i),
                open=float(opens[i]),
                high=float(highs[i]),
                low=float(lows[i]),
                close=float(closes[i]),
                volume=float(volumes[i]),
            )
            for i in range(count)
        ]
