"""
Grid (mean reversion) strategy.

Simulates a price grid around the moving average: buys when price falls
two grid steps below the SMA and sells when it rises two steps above.
"""

from typing import Sequence

from crypto.backtesting.errors import InvalidConfigurationError
from crypto.backtesting.indicators import sma
from crypto.backtesting.models import Candle, Signal
from crypto.backtesting.strategies.base import Strategy, require_positive

# Deviation threshold, in grid steps, that triggers a trade
GRID_TRIGGER_STEPS = 2


class GridStrategy(Strategy):
    """Deviation-from-SMA trader."""

    name = "grid"

    def __init__(self, grid_spacing: float = 0.01, period: int = 20):
        self.grid_spacing = require_positive("grid_spacing", grid_spacing)
        if int(period) != period or period < 2:
            raise InvalidConfigurationError(f"period must be an integer >= 2, got {period!r}")
        self.period = int(period)
        self.min_history = self.period

    def generate_signal(self, history: Sequence[Candle], current: Candle) -> Signal:
        if not self.has_enough_history(history):
            return Signal.HOLD

        average = sma([c.close for c in history[-self.period:]], self.period)
        if average <= 0:
            return Signal.HOLD

        deviation = (current.close - average) / average
        threshold = GRID_TRIGGER_STEPS * self.grid_spacing

        if deviation < -threshold:
            return Signal.BUY
        if deviation > threshold:
            return Signal.SELL
        return Signal.HOLD
