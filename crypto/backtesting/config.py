"""
Backtest Configuration

A single BacktestConfig dataclass captures everything a batch of backtests
needs: which symbols, which timeframe and date range, which strategies, and
the simulator's money parameters.

Each (symbol, strategy) pair becomes one BacktestJob in the engine.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

from crypto.backtesting.errors import InvalidConfigurationError
from crypto.backtesting.data_providers.base import to_utc_datetime
from crypto.backtesting.strategies.factory import StrategySpec, StrategyType, parse_strategy_type
from crypto.config import (
    DEFAULT_FEE_RATE,
    DEFAULT_INITIAL_BALANCE,
    DEFAULT_SYMBOL,
    DEFAULT_TIMEFRAME,
    HISTORY_WINDOW,
    MAX_PARALLEL_BACKTESTS,
    POSITION_SIZE_FRACTION,
    TIMEFRAME_SECONDS,
)


@dataclass
class BacktestConfig:
    """
    Master configuration for the backtesting pipeline.

    Strategies are stored as specs, never instances; the engine builds a
    fresh strategy for every run.
    """

    # ── Date Range ──────────────────────────────────────────────────
    start_date: str = '2024-01-01'
    end_date: str = '2024-02-01'

    # ── Symbol & Timeframe Selection ────────────────────────────────
    symbols: List[str] = field(default_factory=lambda: [DEFAULT_SYMBOL])
    timeframe: str = DEFAULT_TIMEFRAME

    # ── Strategies ──────────────────────────────────────────────────
    strategies: List[StrategySpec] = field(default_factory=lambda: [
        StrategySpec(StrategyType.DCA, {'interval_hours': 24}),
    ])

    # ── Simulator ───────────────────────────────────────────────────
    initial_balance: float = DEFAULT_INITIAL_BALANCE
    fee_rate: float = DEFAULT_FEE_RATE
    position_size_fraction: float = POSITION_SIZE_FRACTION
    history_window: int = HISTORY_WINDOW

    # ── Data Source ─────────────────────────────────────────────────
    # Off by default: a failed fetch fails the run instead of quietly
    # replaying random data
    allow_synthetic_fallback: bool = False
    synthetic_seed: Any = None

    # ── Execution ───────────────────────────────────────────────────
    max_workers: int = MAX_PARALLEL_BACKTESTS

    def validate(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues = []
        if not self.symbols:
            issues.append('No symbols configured')
        for symbol in self.symbols:
            if not isinstance(symbol, str) or not symbol.strip():
                issues.append(f'Invalid symbol: {symbol!r}')
        if self.timeframe not in TIMEFRAME_SECONDS:
            issues.append(f'Invalid timeframe: {self.timeframe}')
        if not self.strategies:
            issues.append('No strategies configured')
        for spec in self.strategies:
            if not isinstance(spec, StrategySpec):
                issues.append(f'Strategy must be a StrategySpec, got {spec!r}')

        try:
            start = to_utc_datetime(self.start_date)
            end = to_utc_datetime(self.end_date)
            if start >= end:
                issues.append('start_date must be before end_date')
        except InvalidConfigurationError as e:
            issues.append(str(e))

        if not _is_finite(self.initial_balance) or self.initial_balance <= 0:
            issues.append('initial_balance must be positive')
        if not _is_finite(self.fee_rate) or not 0 <= self.fee_rate < 1:
            issues.append('fee_rate must be in [0, 1)')
        if not _is_finite(self.position_size_fraction) or not 0 < self.position_size_fraction <= 1:
            issues.append('position_size_fraction must be in (0, 1]')
        if not isinstance(self.history_window, int) or self.history_window < 1:
            issues.append('history_window must be an integer >= 1')
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            issues.append('max_workers must be an integer >= 1')
        return issues

    def raise_for_issues(self) -> None:
        """Raise InvalidConfigurationError listing every issue found."""
        issues = self.validate()
        if issues:
            raise InvalidConfigurationError('; '.join(issues))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_date': self.start_date,
            'end_date': self.end_date,
            'symbols': list(self.symbols),
            'timeframe': self.timeframe,
            'strategies': [s.to_dict() for s in self.strategies],
            'initial_balance': self.initial_balance,
            'fee_rate': self.fee_rate,
            'position_size_fraction': self.position_size_fraction,
            'history_window': self.history_window,
            'allow_synthetic_fallback': self.allow_synthetic_fallback,
            'synthetic_seed': self.synthetic_seed,
            'max_workers': self.max_workers,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BacktestConfig':
        """
        Build from a plain dict (e.g. parsed JSON).

        Strategies may be given as spec dicts or bare names ('dca').
        """
        data = dict(data)
        strategies = []
        for item in data.pop('strategies', []) or []:
            if isinstance(item, StrategySpec):
                strategies.append(item)
            elif isinstance(item, dict):
                strategies.append(StrategySpec.from_dict(item))
            else:
                strategies.append(StrategySpec(parse_strategy_type(item)))
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidConfigurationError(f'Unknown config fields: {unknown}')
        config = cls(**data)
        if strategies:
            config.strategies = strategies
        return config


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False
