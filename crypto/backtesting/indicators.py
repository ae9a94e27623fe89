"""
Technical indicators used by the backtest strategies.

Every function takes a sequence of prices ordered oldest -> newest and
returns the value at the newest price. Inputs shorter than the indicator
period raise InsufficientHistoryError; strategies turn that into HOLD.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from crypto.backtesting.errors import InsufficientHistoryError


@dataclass(frozen=True)
class MACDResult:
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float

    @property
    def width(self) -> float:
        return self.upper - self.lower


def _as_array(prices: Sequence[float], required: int) -> np.ndarray:
    values = np.asarray(prices, dtype=float)
    if len(values) < required:
        raise InsufficientHistoryError(required, len(values))
    return values


def sma(prices: Sequence[float], period: int) -> float:
    """Simple moving average of the last `period` prices."""
    values = _as_array(prices, period)
    return float(values[-period:].mean())


def ema_series(prices: Sequence[float], period: int) -> np.ndarray:
    """
    Exponential moving average at every point of the window.

    Seeded with the first price, then ema = price * k + ema * (1 - k)
    with k = 2 / (period + 1). pandas ewm(adjust=False) is exactly this
    recurrence.
    """
    values = _as_array(prices, 1)
    return pd.Series(values).ewm(span=period, adjust=False).mean().to_numpy()


def ema(prices: Sequence[float], period: int) -> float:
    """Latest value of ema_series."""
    return float(ema_series(prices, period)[-1])


def rsi(prices: Sequence[float], period: int = 14) -> float:
    """
    Relative Strength Index over the trailing `period` price changes.

    Uses simple averages of gains and losses. With no losses in the window
    the RSI saturates at 100.
    """
    values = _as_array(prices, period + 1)
    changes = np.diff(values[-(period + 1):])

    avg_gain = changes[changes > 0].sum() / period
    avg_loss = -changes[changes < 0].sum() / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return float(100.0 - (100.0 / (1.0 + rs)))


def macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """
    MACD line (EMA fast - EMA slow), its EMA signal line and the histogram.
    """
    values = _as_array(prices, slow)
    macd_line = ema_series(values, fast) - ema_series(values, slow)
    signal_line = ema_series(macd_line, signal)

    return MACDResult(
        macd=float(macd_line[-1]),
        signal=float(signal_line[-1]),
        histogram=float(macd_line[-1] - signal_line[-1]),
    )


def bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    num_std: float = 2.0,
) -> BollingerBands:
    """Bollinger Bands around the `period` SMA using population std dev."""
    window = _as_array(prices, period)[-period:]
    middle = window.mean()
    std = window.std()  # ddof=0

    return BollingerBands(
        upper=float(middle + num_std * std),
        middle=float(middle),
        lower=float(middle - num_std * std),
    )
