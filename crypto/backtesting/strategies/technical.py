"""
Technical indicator strategy.

Combines RSI, MACD histogram and Bollinger Bands. All three must agree:
- BUY:  RSI oversold, close below the lower band, histogram positive
- SELL: RSI overbought, close above the upper band, histogram negative
"""

from typing import Sequence

from crypto.backtesting.errors import InsufficientHistoryError, InvalidConfigurationError
from crypto.backtesting.indicators import bollinger_bands, macd, rsi
from crypto.backtesting.models import Candle, Signal
from crypto.backtesting.strategies.base import Strategy


class TechnicalStrategy(Strategy):
    """RSI(14) + MACD(12, 26, 9) + Bollinger(20, 2) confluence."""

    name = "technical"

    def __init__(
        self,
        rsi_period: int = 14,
        oversold: float = 30.0,
        overbought: float = 70.0,
        bb_period: int = 20,
        bb_std: float = 2.0,
        min_history: int = 50,
    ):
        if not 0 <= oversold < overbought <= 100:
            raise InvalidConfigurationError(
                f"Need 0 <= oversold < overbought <= 100, got {oversold}/{overbought}"
            )
        if rsi_period < 1 or bb_period < 2 or bb_std <= 0:
            raise InvalidConfigurationError("rsi_period, bb_period and bb_std must be positive")

        self.rsi_period = int(rsi_period)
        self.oversold = float(oversold)
        self.overbought = float(overbought)
        self.bb_period = int(bb_period)
        self.bb_std = float(bb_std)
        self.min_history = int(min_history)

    def generate_signal(self, history: Sequence[Candle], current: Candle) -> Signal:
        if not self.has_enough_history(history):
            return Signal.HOLD

        prices = self.closes(history, current)
        try:
            rsi_value = rsi(prices, self.rsi_period)
            histogram = macd(prices).histogram
            bands = bollinger_bands(prices, self.bb_period, self.bb_std)
        except InsufficientHistoryError:
            return Signal.HOLD

        close = current.close
        if rsi_value < self.oversold and close < bands.lower and histogram > 0:
            return Signal.BUY
        if rsi_value > self.overbought and close > bands.upper and histogram < 0:
            return Signal.SELL
        return Signal.HOLD
