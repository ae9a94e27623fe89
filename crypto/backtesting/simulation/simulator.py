"""
Simulator - Candle Replay State Machine

Replays a fully materialized candle sequence through one Strategy:
- FLAT -> IN_POSITION on BUY (sized at a fraction of cash balance)
- IN_POSITION -> FLAT on SELL, or forced on the last candle
- Fees charged on both legs
- Peak / max drawdown tracked on the cash balance after every candle

One long position at most. No randomness: the same candles and a fresh
strategy always give the same trades.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from crypto.backtesting.analytics.results import BacktestResult, ResultAggregator
from crypto.backtesting.errors import BacktestCancelledError, InvalidConfigurationError
from crypto.backtesting.models import (
    Candle,
    CandleSeries,
    DataOrigin,
    ExitReason,
    Position,
    Signal,
    SimulationState,
    Trade,
)
from crypto.backtesting.simulation.cancellation import CancellationToken
from crypto.backtesting.strategies.base import Strategy
from crypto.config import (
    DEFAULT_FEE_RATE,
    DEFAULT_INITIAL_BALANCE,
    HISTORY_WINDOW,
    POSITION_SIZE_FRACTION,
)

logger = logging.getLogger(__name__)


@dataclass
class SimulationOutcome:
    """Raw output of one Simulator.run() call, before aggregation."""

    trades: List[Trade] = field(default_factory=list)
    initial_balance: float = 0.0
    final_balance: float = 0.0
    max_drawdown: float = 0.0  # fraction
    candle_count: int = 0

    @property
    def net_profit(self) -> float:
        return self.final_balance - self.initial_balance


class Simulator:
    """
    Single-position long-only backtest simulator.

    Parameters are validated here so a bad configuration fails before any
    candle is processed. A Simulator holds no per-run state; every run()
    call starts from a fresh SimulationState, so one instance may be
    reused, though strategies must not be.

    Usage:
        sim = Simulator(initial_balance=10000, fee_rate=0.001)
        outcome = sim.run(candles, DCAStrategy(interval_hours=24))
    """

    def __init__(
        self,
        initial_balance: float = DEFAULT_INITIAL_BALANCE,
        fee_rate: float = DEFAULT_FEE_RATE,
        position_size_fraction: float = POSITION_SIZE_FRACTION,
        history_window: int = HISTORY_WINDOW,
    ):
        self.initial_balance = _finite("initial_balance", initial_balance)
        self.fee_rate = _finite("fee_rate", fee_rate)
        self.position_size_fraction = _finite("position_size_fraction", position_size_fraction)

        if self.initial_balance <= 0:
            raise InvalidConfigurationError(
                f"initial_balance must be positive, got {initial_balance}"
            )
        if not 0 <= self.fee_rate < 1:
            raise InvalidConfigurationError(f"fee_rate must be in [0, 1), got {fee_rate}")
        if not 0 < self.position_size_fraction <= 1:
            raise InvalidConfigurationError(
                f"position_size_fraction must be in (0, 1], got {position_size_fraction}"
            )
        if isinstance(history_window, bool) or not isinstance(history_window, int) \
                or history_window < 1:
            raise InvalidConfigurationError(
                f"history_window must be an integer >= 1, got {history_window!r}"
            )
        self.history_window = history_window

    def run(
        self,
        candles: Sequence[Candle],
        strategy: Strategy,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SimulationOutcome:
        """
        Replay candles through the strategy.

        Args:
            candles: Candles in ascending timestamp order
            strategy: Fresh strategy instance for this run
            cancel_token: Checked once per candle

        Returns:
            SimulationOutcome with closed trades and final balance

        Raises:
            BacktestCancelledError: cancel_token was cancelled mid-run
        """
        candles = list(candles)
        total = len(candles)
        state = SimulationState(balance=self.initial_balance, peak_balance=self.initial_balance)
        trades: List[Trade] = []

        logger.info("Simulating %s over %d candles (balance=%.2f, fee_rate=%.4f)",
                    strategy.name, total, self.initial_balance, self.fee_rate)

        for i, candle in enumerate(candles):
            if cancel_token is not None and cancel_token.cancelled:
                logger.info("Simulation cancelled at candle %d/%d", i, total)
                raise BacktestCancelledError(processed=i, total=total)

            history = candles[max(0, i - self.history_window):i]
            signal = strategy.generate_signal(history, candle)

            if signal is Signal.BUY and state.is_flat:
                self._open_position(state, candle)
            elif signal is Signal.SELL and not state.is_flat:
                trades.append(self._close_position(state, candle, ExitReason.SIGNAL))

            self._update_drawdown(state)

        if not state.is_flat:
            trades.append(self._close_position(state, candles[-1], ExitReason.END_OF_DATA))
            self._update_drawdown(state)

        outcome = SimulationOutcome(
            trades=trades,
            initial_balance=self.initial_balance,
            final_balance=state.balance,
            max_drawdown=state.max_drawdown,
            candle_count=total,
        )
        logger.info("Simulation complete: %d trades, final balance %.2f, max drawdown %.2f%%",
                    len(trades), state.balance, state.max_drawdown * 100)
        return outcome

    def _open_position(self, state: SimulationState, candle: Candle) -> None:
        price = candle.close
        if price <= 0:
            logger.warning("Skipping BUY at non-positive price %s (%s)", price, candle.timestamp)
            return

        quantity = state.balance * self.position_size_fraction / price
        cost = quantity * price
        fee = cost * self.fee_rate
        state.balance -= cost + fee
        state.position = Position(
            quantity=quantity,
            entry_price=price,
            entry_time=candle.timestamp,
            entry_fee=fee,
        )
        logger.debug("OPEN %.8f @ %.2f (%s) fee=%.4f", quantity, price, candle.timestamp, fee)

    def _close_position(
        self,
        state: SimulationState,
        candle: Candle,
        reason: ExitReason,
    ) -> Trade:
        position = state.position
        exit_price = candle.close
        exit_value = position.market_value(exit_price)
        exit_fee = exit_value * self.fee_rate
        entry_value = position.entry_value
        profit = exit_value - entry_value - position.entry_fee - exit_fee

        state.balance += exit_value - exit_fee
        state.position = None

        trade = Trade(
            entry_time=position.entry_time,
            exit_time=candle.timestamp,
            entry_price=position.entry_price,
            exit_price=exit_price,
            quantity=position.quantity,
            side="buy",
            profit=profit,
            profit_percent=profit / entry_value * 100 if entry_value else 0.0,
            fees=position.entry_fee + exit_fee,
            exit_reason=reason,
        )
        logger.debug("CLOSE %.8f @ %.2f (%s, %s) profit=%.4f",
                     trade.quantity, exit_price, candle.timestamp, reason.value, profit)
        return trade

    @staticmethod
    def _update_drawdown(state: SimulationState) -> None:
        # Cash balance only; an open position is not marked to market.
        state.peak_balance = max(state.peak_balance, state.balance)
        if state.peak_balance > 0:
            drawdown = (state.peak_balance - state.balance) / state.peak_balance
            state.max_drawdown = max(state.max_drawdown, drawdown)


def _finite(name: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InvalidConfigurationError(f"{name} must be finite, got {value!r}")
    return number


def run_backtest(
    candles: Union[CandleSeries, Sequence[Candle]],
    strategy: Strategy,
    initial_balance: float = DEFAULT_INITIAL_BALANCE,
    fee_rate: float = DEFAULT_FEE_RATE,
    cancel_token: Optional[CancellationToken] = None,
    origin: DataOrigin = DataOrigin.UNKNOWN,
    **simulator_kwargs,
) -> BacktestResult:
    """
    Simulate and aggregate in one call.

    Args:
        candles: CandleSeries (metadata is carried into the result) or a
            plain candle sequence
        strategy: Fresh strategy instance
        initial_balance: Starting cash
        fee_rate: Fee per leg as a fraction of notional
        cancel_token: Optional cooperative cancellation
        origin: Source of a plain candle sequence (a CandleSeries
            carries its own)
        **simulator_kwargs: position_size_fraction, history_window

    Returns:
        BacktestResult
    """
    simulator = Simulator(initial_balance=initial_balance, fee_rate=fee_rate, **simulator_kwargs)

    metadata = {"strategy": strategy.name}
    if isinstance(candles, CandleSeries):
        metadata.update(
            symbol=candles.symbol,
            timeframe=candles.timeframe,
            data_origin=candles.origin.value,
            synthetic=candles.synthetic,
        )
    else:
        origin = DataOrigin(origin)
        metadata.update(data_origin=origin.value, synthetic=origin is DataOrigin.SYNTHETIC)

    outcome = simulator.run(candles, strategy, cancel_token=cancel_token)
    return ResultAggregator.aggregate(
        outcome.trades,
        initial_balance=outcome.initial_balance,
        final_balance=outcome.final_balance,
        max_drawdown=outcome.max_drawdown,
        candle_count=outcome.candle_count,
        **metadata,
    )
