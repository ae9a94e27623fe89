"""
Momentum strategy.

Enters when trend strength, RSI, MACD and volume all point up, then
exits on a fixed stop-loss or take-profit distance from the entry close.
"""

from typing import Optional, Sequence

import numpy as np

from crypto.backtesting.errors import InsufficientHistoryError, InvalidConfigurationError
from crypto.backtesting.indicators import macd, rsi, sma
from crypto.backtesting.models import Candle, Signal
from crypto.backtesting.strategies.base import Strategy, require_positive

TREND_WINDOW = 20


class MomentumStrategy(Strategy):
    """
    Trend-following entry with bracket exits.

    Stateful: remembers the close of its last BUY as the reference for the
    stop-loss / take-profit levels.
    """

    name = "momentum"
    min_history = 26

    def __init__(
        self,
        rsi_threshold: float = 55.0,
        trend_strength: float = 0.7,
        volume_increase: float = 1.5,
        stop_loss: float = 0.05,
        take_profit: float = 0.15,
    ):
        if not 0 <= rsi_threshold <= 100:
            raise InvalidConfigurationError(f"rsi_threshold must be in [0, 100], got {rsi_threshold}")
        if not 0 <= trend_strength <= 1:
            raise InvalidConfigurationError(f"trend_strength must be in [0, 1], got {trend_strength}")

        self.rsi_threshold = float(rsi_threshold)
        self.trend_strength = float(trend_strength)
        self.volume_increase = require_positive("volume_increase", volume_increase)
        self.stop_loss = require_positive("stop_loss", stop_loss)
        self.take_profit = require_positive("take_profit", take_profit)
        self.entry_reference: Optional[float] = None

    def generate_signal(self, history: Sequence[Candle], current: Candle) -> Signal:
        if self.entry_reference is not None:
            return self._check_exit(current)

        if not self.has_enough_history(history):
            return Signal.HOLD

        try:
            entry = self._entry_conditions_met(history, current)
        except InsufficientHistoryError:
            return Signal.HOLD

        if entry:
            self.entry_reference = current.close
            return Signal.BUY
        return Signal.HOLD

    def reset(self) -> None:
        self.entry_reference = None

    def _check_exit(self, current: Candle) -> Signal:
        stop = self.entry_reference * (1 - self.stop_loss)
        target = self.entry_reference * (1 + self.take_profit)
        if current.close <= stop or current.close >= target:
            self.entry_reference = None
            return Signal.SELL
        return Signal.HOLD

    def _entry_conditions_met(self, history: Sequence[Candle], current: Candle) -> bool:
        prices = self.closes(history, current)
        recent = prices[-TREND_WINDOW:]
        average = sma(recent, TREND_WINDOW)
        strength = float(np.mean(np.asarray(recent) > average))

        volumes = [c.volume for c in history[-TREND_WINDOW:]]
        avg_volume = float(np.mean(volumes)) if volumes else 0.0
        volume_ratio = current.volume / avg_volume if avg_volume > 0 else 0.0

        return (
            strength > self.trend_strength
            and rsi(prices, 14) > self.rsi_threshold
            and macd(prices).macd > 0
            and volume_ratio > self.volume_increase
        )
