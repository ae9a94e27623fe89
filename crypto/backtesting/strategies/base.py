"""
Base Strategy Interface

Abstract base class for backtest strategies.
A strategy maps (history, current candle) to a BUY/SELL/HOLD signal.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from crypto.backtesting.errors import InvalidConfigurationError
from crypto.backtesting.models import Candle, Signal


class Strategy(ABC):
    """
    Abstract base class for signal strategies.

    All strategies must implement:
    - generate_signal(): decide on the current candle

    Strategies receive at most the simulator's history window of previous
    candles (oldest first) and must return HOLD rather than fail when that
    history is shorter than min_history.

    Strategies that keep state between candles (DCA, Momentum) must not be
    shared between runs. Build a fresh instance per run, or call reset().
    """

    name: str = "base"
    min_history: int = 0

    @abstractmethod
    def generate_signal(self, history: Sequence[Candle], current: Candle) -> Signal:
        """
        Decide what to do on the current candle.

        Args:
            history: Previous candles, oldest first (excludes current)
            current: Candle being processed

        Returns:
            Signal.BUY, Signal.SELL or Signal.HOLD
        """
        pass

    def reset(self) -> None:
        """Clear any state carried between candles. No-op for pure strategies."""
        pass

    def has_enough_history(self, history: Sequence[Candle]) -> bool:
        return len(history) >= self.min_history

    @staticmethod
    def closes(history: Sequence[Candle], current: Candle) -> List[float]:
        """Close prices of history followed by the current close."""
        return [c.close for c in history] + [current.close]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


def require_positive(name: str, value: float) -> float:
    """Reject zero, negative and non-numeric strategy parameters."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(f"{name} must be a number, got {value!r}")
    if not number > 0:
        raise InvalidConfigurationError(f"{name} must be positive, got {value!r}")
    return number
