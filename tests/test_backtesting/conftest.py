"""
Shared fixtures for backtesting tests.

Provides candle builders, a scripted strategy for driving the simulator
through exact signal sequences, and a static candle source.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from crypto.backtesting.models import Candle, CandleSeries, DataOrigin, Signal
from crypto.backtesting.strategies.base import Strategy

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_candles(
    closes: Sequence[float],
    start: datetime = START,
    hours: float = 1,
    volume: float = 1000.0,
) -> List[Candle]:
    """Candles whose open is the previous close (first candle: open == close)."""
    candles = []
    prev = closes[0] if closes else 0.0
    for i, close in enumerate(closes):
        candles.append(
            Candle(
                timestamp=start + timedelta(hours=hours * i),
                open=prev,
                high=max(prev, close),
                low=min(prev, close),
                close=close,
                volume=volume,
            )
        )
        prev = close
    return candles


class ScriptedStrategy(Strategy):
    """Emits a fixed signal sequence, then HOLD. Records history lengths."""

    name = "scripted"

    def __init__(self, signals: Sequence[Signal], on_call=None):
        self.signals = list(signals)
        self.calls = 0
        self.history_lengths: List[int] = []
        self.on_call = on_call

    def generate_signal(self, history, current):
        self.history_lengths.append(len(history))
        index = self.calls
        self.calls += 1
        if self.on_call is not None:
            self.on_call(index)
        if index < len(self.signals):
            return self.signals[index]
        return Signal.HOLD


class ConstantStrategy(Strategy):
    """Always emits the same signal. Counts calls and resets."""

    name = "constant"

    def __init__(self, signal: Signal):
        self.signal = signal
        self.calls = 0
        self.resets = 0

    def generate_signal(self, history, current):
        self.calls += 1
        return self.signal

    def reset(self):
        self.resets += 1


class StaticCandleSource:
    """CandleSource returning pre-built candles; fails for listed symbols."""

    def __init__(self, candles: Sequence[Candle], origin: DataOrigin = DataOrigin.BINANCE,
                 fail_for: Optional[Sequence[str]] = None, error=None):
        self.candles = tuple(candles)
        self.origin = origin
        self.fail_for = set(fail_for or [])
        self.error = error
        self.calls = []

    def load(self, symbol, timeframe, start, end):
        self.calls.append(symbol)
        if symbol in self.fail_for:
            raise self.error
        return CandleSeries(symbol=symbol, timeframe=timeframe, candles=self.candles,
                            origin=self.origin)


@pytest.fixture
def candle_factory():
    """Return the make_candles builder."""
    return make_candles


@pytest.fixture
def flat_candles():
    """48 hourly candles all closing at 50000."""
    return make_candles([50000.0] * 48)


@pytest.fixture
def wave_candles():
    """300 hourly candles oscillating around 100 with a slow drift."""
    closes = []
    for i in range(300):
        swing = ((i % 24) - 12) * 0.8
        drift = i * 0.05
        closes.append(100.0 + swing + drift)
    return make_candles(closes)
