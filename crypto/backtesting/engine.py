"""
Backtest Engine - Top-level Orchestrator

Coordinates the full backtesting pipeline for each (symbol, strategy) job:
1. Load candles from the candle source (Binance by default)
2. Optionally fall back to synthetic candles, flagged as such
3. Build a fresh strategy from its spec
4. Run the simulator and aggregate the result

Jobs can run in parallel; each owns its strategy and simulator, so there is
no shared mutable state between them.

Usage:
    from crypto.backtesting.engine import BacktestEngine
    from crypto.backtesting.config import BacktestConfig

    config = BacktestConfig(symbols=['BTCUSDT', 'ETHUSDT'])
    engine = BacktestEngine(config)
    for outcome in engine.run_all():
        print(outcome.result.summary() if outcome.ok else outcome.error)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from crypto.backtesting.analytics.results import BacktestResult
from crypto.backtesting.config import BacktestConfig
from crypto.backtesting.data_providers.base import CandleSource, require_candles, to_utc_datetime
from crypto.backtesting.data_providers.binance_provider import BinanceCandleSource
from crypto.backtesting.data_providers.synthetic_provider import SyntheticCandleSource
from crypto.backtesting.errors import BacktestError, DataSourceError, InvalidConfigurationError
from crypto.backtesting.models import CandleSeries
from crypto.backtesting.simulation.cancellation import CancellationToken
from crypto.backtesting.simulation.simulator import run_backtest
from crypto.backtesting.strategies.factory import StrategySpec, create_strategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BacktestJob:
    """One (symbol, strategy, dataset) unit of work."""

    symbol: str
    strategy: StrategySpec
    timeframe: str
    start: datetime
    end: datetime

    @property
    def label(self) -> str:
        return f"{self.symbol} {self.timeframe} {self.strategy.name}"


@dataclass
class BacktestOutcome:
    """Result or error of one job in a batch."""

    job: BacktestJob
    result: Optional[BacktestResult] = None
    error: Optional[BacktestError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


class BacktestEngine:
    """
    Top-level backtest orchestrator.

    Manages data loading, strategy construction, simulation and results
    collection across symbols and strategies.
    """

    def __init__(
        self,
        config: BacktestConfig,
        candle_source: Optional[CandleSource] = None,
        fallback_source: Optional[CandleSource] = None,
    ):
        """
        Args:
            config: Validated on construction
            candle_source: Primary source (defaults to Binance)
            fallback_source: Used only when config.allow_synthetic_fallback
                is set and the primary source fails (defaults to a seeded
                synthetic source)

        Raises:
            InvalidConfigurationError: config has issues
        """
        issues = config.validate()
        if issues:
            for issue in issues:
                logger.error("Config issue: %s", issue)
            raise InvalidConfigurationError('; '.join(issues))

        self._config = config
        self._candle_source = candle_source or BinanceCandleSource()
        self._fallback_source = fallback_source or SyntheticCandleSource(
            seed=config.synthetic_seed
        )

    @property
    def config(self) -> BacktestConfig:
        return self._config

    def jobs_from_config(self) -> List[BacktestJob]:
        """Expand config into one job per (symbol, strategy)."""
        start = to_utc_datetime(self._config.start_date)
        end = to_utc_datetime(self._config.end_date)
        return [
            BacktestJob(
                symbol=symbol,
                strategy=spec,
                timeframe=self._config.timeframe,
                start=start,
                end=end,
            )
            for symbol in self._config.symbols
            for spec in self._config.strategies
        ]

    def run(
        self,
        job: Optional[BacktestJob] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> BacktestResult:
        """
        Execute a single backtest.

        Args:
            job: Job to run. May be omitted when the config describes
                exactly one job.
            cancel_token: Cooperative cancellation

        Returns:
            BacktestResult (synthetic=True if fallback data was used)

        Raises:
            DataSourceError: candles unavailable and fallback not allowed
            InvalidConfigurationError: bad strategy parameters
            BacktestCancelledError: cancelled mid-run
        """
        if job is None:
            jobs = self.jobs_from_config()
            if len(jobs) != 1:
                raise InvalidConfigurationError(
                    f"Config describes {len(jobs)} jobs; pass one explicitly or use run_all()"
                )
            job = jobs[0]

        # Fresh instance per run: DCA/Momentum carry state between candles
        strategy = create_strategy(job.strategy)
        series = self._load_candles(job)
        require_candles(series, strategy.min_history + 1)

        logger.info("Running backtest: %s (%s to %s, %d candles, origin=%s)",
                    job.label, job.start.date(), job.end.date(), len(series), series.origin.value)

        result = run_backtest(
            series,
            strategy,
            initial_balance=self._config.initial_balance,
            fee_rate=self._config.fee_rate,
            cancel_token=cancel_token,
            position_size_fraction=self._config.position_size_fraction,
            history_window=self._config.history_window,
        )

        logger.info("%s: %d trades, net profit %.2f", job.label, result.total_trades,
                    result.net_profit)
        return result

    def _load_candles(self, job: BacktestJob) -> CandleSeries:
        try:
            return self._candle_source.load(job.symbol, job.timeframe, job.start, job.end)
        except DataSourceError as e:
            if not self._config.allow_synthetic_fallback:
                raise
            logger.warning("Data load failed for %s (%s); using SYNTHETIC candles",
                           job.label, e)
            return self._fallback_source.load(job.symbol, job.timeframe, job.start, job.end)

    def run_many(
        self,
        jobs: Sequence[BacktestJob],
        max_workers: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[BacktestOutcome]:
        """
        Run jobs in parallel, isolating per-job failures.

        Args:
            jobs: Jobs to run
            max_workers: Thread count (defaults to config.max_workers)
            cancel_token: Shared token; cancelling it aborts every job

        Returns:
            One BacktestOutcome per job, in input order
        """
        jobs = list(jobs)
        if not jobs:
            return []

        workers = min(max_workers or self._config.max_workers, len(jobs))
        logger.info("Running %d backtests on %d workers", len(jobs), workers)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._run_isolated, job, cancel_token) for job in jobs]
            outcomes = [f.result() for f in futures]

        failed = sum(1 for o in outcomes if not o.ok)
        logger.info("Batch complete: %d succeeded, %d failed", len(outcomes) - failed, failed)
        return outcomes

    def run_all(self, cancel_token: Optional[CancellationToken] = None) -> List[BacktestOutcome]:
        """Run every job the config describes."""
        return self.run_many(self.jobs_from_config(), cancel_token=cancel_token)

    def _run_isolated(
        self,
        job: BacktestJob,
        cancel_token: Optional[CancellationToken],
    ) -> BacktestOutcome:
        try:
            return BacktestOutcome(job=job, result=self.run(job, cancel_token=cancel_token))
        except BacktestError as e:
            logger.error("Backtest failed for %s: %s", job.label, e)
            return BacktestOutcome(job=job, error=e)
