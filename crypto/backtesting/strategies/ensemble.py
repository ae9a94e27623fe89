"""
Multi-strategy ensemble.

Polls every member strategy on each candle and trades on a vote.
"""

from collections import Counter
from typing import List, Optional, Sequence

from crypto.backtesting.errors import InvalidConfigurationError
from crypto.backtesting.models import Candle, Signal
from crypto.backtesting.strategies.base import Strategy


class EnsembleStrategy(Strategy):
    """
    Majority vote over member strategies.

    BUY (SELL) when at least min_agreement members say so and strictly more
    members say BUY than SELL (or vice versa). Every member is polled on every
    candle so stateful members keep their clocks in step.
    """

    name = "ensemble"
    min_history = 0

    def __init__(self, members: List[Strategy], min_agreement: Optional[int] = None):
        if not members:
            raise InvalidConfigurationError("Ensemble needs at least one member strategy")
        if min_agreement is None:
            min_agreement = len(members) // 2 + 1
        if not 1 <= min_agreement <= len(members):
            raise InvalidConfigurationError(
                f"min_agreement must be between 1 and {len(members)}, got {min_agreement}"
            )
        self.members = list(members)
        self.min_agreement = int(min_agreement)

    def generate_signal(self, history: Sequence[Candle], current: Candle) -> Signal:
        votes = Counter(member.generate_signal(history, current) for member in self.members)
        buys, sells = votes[Signal.BUY], votes[Signal.SELL]

        if buys >= self.min_agreement and buys > sells:
            return Signal.BUY
        if sells >= self.min_agreement and sells > buys:
            return Signal.SELL
        return Signal.HOLD

    def reset(self) -> None:
        for member in self.members:
            member.reset()

    def __repr__(self) -> str:
        names = ", ".join(m.name for m in self.members)
        return f"EnsembleStrategy(members=[{names}], min_agreement={self.min_agreement})"
