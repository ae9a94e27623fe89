"""
Candlestick pattern strategy.

Reads the current candle (and up to two predecessors) for classic
reversal and continuation patterns:

    DOJI                -> HOLD (indecision)
    HAMMER              -> BUY
    SHOOTING STAR       -> SELL
    BULLISH ENGULFING   -> BUY
    BEARISH ENGULFING   -> SELL
    THREE WHITE SOLDIERS-> BUY
    THREE BLACK CROWS   -> SELL
"""

import logging
from typing import Optional, Sequence, Tuple

from crypto.backtesting.models import Candle, Signal
from crypto.backtesting.strategies.base import Strategy

logger = logging.getLogger(__name__)

DOJI_BODY_RATIO = 0.1
WICK_BODY_MULTIPLE = 2.0
OPPOSITE_WICK_RATIO = 0.5


def detect_pattern(history: Sequence[Candle], current: Candle) -> Tuple[Optional[str], Signal]:
    """
    Identify the pattern formed by the current candle.

    Returns:
        (pattern name or None, signal)
    """
    if current.range <= 0:
        return None, Signal.HOLD

    body = current.body
    if body / current.range < DOJI_BODY_RATIO:
        return "DOJI", Signal.HOLD

    if current.lower_wick > body * WICK_BODY_MULTIPLE and current.upper_wick < body * OPPOSITE_WICK_RATIO:
        return "HAMMER", Signal.BUY

    if current.upper_wick > body * WICK_BODY_MULTIPLE and current.lower_wick < body * OPPOSITE_WICK_RATIO:
        return "SHOOTING_STAR", Signal.SELL

    if history:
        prev = history[-1]
        if (current.is_bullish and prev.is_bearish
                and current.open < prev.close and current.close > prev.open):
            return "ENGULFING_BULLISH", Signal.BUY
        if (current.is_bearish and prev.is_bullish
                and current.open > prev.close and current.close < prev.open):
            return "ENGULFING_BEARISH", Signal.SELL

    if len(history) >= 2:
        first, second = history[-2], history[-1]
        last3 = (first, second, current)
        if all(c.is_bullish for c in last3) and first.close < second.close < current.close:
            return "THREE_WHITE_SOLDIERS", Signal.BUY
        if all(c.is_bearish for c in last3) and first.close > second.close > current.close:
            return "THREE_BLACK_CROWS", Signal.SELL

    return None, Signal.HOLD


class CandlestickStrategy(Strategy):
    """Pattern-driven trader; stateless."""

    name = "candlestick"
    min_history = 1

    def generate_signal(self, history: Sequence[Candle], current: Candle) -> Signal:
        if not self.has_enough_history(history):
            return Signal.HOLD

        pattern, signal = detect_pattern(history, current)
        if pattern:
            logger.debug("%s pattern at %s -> %s", pattern, current.timestamp, signal.value)
        return signal
