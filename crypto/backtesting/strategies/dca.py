"""
Dollar-Cost Averaging strategy.

Buys once every `interval_hours` of simulated time and never sells; the
simulator closes the position at the end of the data.
"""

from datetime import datetime
from typing import Optional, Sequence

from crypto.backtesting.models import Candle, Signal
from crypto.backtesting.strategies.base import Strategy, require_positive


class DCAStrategy(Strategy):
    """
    Interval-based buyer.

    Keeps last_buy_time as instance state. The timer advances on every BUY
    emitted, whether or not the simulator could act on it.
    """

    name = "dca"
    min_history = 0

    def __init__(self, interval_hours: float = 24):
        self.interval_hours = require_positive("interval_hours", interval_hours)
        self.last_buy_time: Optional[datetime] = None

    def generate_signal(self, history: Sequence[Candle], current: Candle) -> Signal:
        if self.last_buy_time is None or self._hours_since_last_buy(current) >= self.interval_hours:
            self.last_buy_time = current.timestamp
            return Signal.BUY
        return Signal.HOLD

    def reset(self) -> None:
        self.last_buy_time = None

    def _hours_since_last_buy(self, current: Candle) -> float:
        return (current.timestamp - self.last_buy_time).total_seconds() / 3600.0
