"""
Tests for crypto/backtesting/engine.py and config.py

Covers:
- BacktestConfig validation
- Job expansion
- Data source failure policy (no silent fallback, explicit opt-in)
- Minimum history enforcement
- Parallel runs with per-job failure isolation
- Cancellation through the engine
"""

from dataclasses import fields

import pytest

from conftest import StaticCandleSource, make_candles
from crypto.backtesting.config import BacktestConfig
from crypto.backtesting.data_providers.synthetic_provider import SyntheticCandleSource
from crypto.backtesting.engine import BacktestEngine, BacktestOutcome
from crypto.backtesting.errors import (
    BacktestCancelledError,
    DataSourceError,
    InvalidConfigurationError,
)
from crypto.backtesting.models import DataOrigin
from crypto.backtesting.simulation.cancellation import CancellationToken
from crypto.backtesting.strategies import StrategySpec, StrategyType

DCA = StrategySpec(StrategyType.DCA, {"interval_hours": 24})
GRID = StrategySpec(StrategyType.GRID, {"grid_spacing": 0.005})
TECHNICAL = StrategySpec(StrategyType.TECHNICAL)


def make_config(**overrides):
    defaults = dict(
        symbols=["BTCUSDT"],
        timeframe="1h",
        start_date="2024-01-01",
        end_date="2024-01-03",
        strategies=[DCA],
        fee_rate=0.001,
    )
    defaults.update(overrides)
    return BacktestConfig(**defaults)


@pytest.fixture
def candles():
    closes = [100.0 + (i % 10) - 5 for i in range(48)]
    return make_candles(closes)


# =============================================================================
# CONFIG
# =============================================================================


class TestBacktestConfig:
    """Tests for BacktestConfig.validate()."""

    def test_defaults_valid(self):
        assert BacktestConfig().validate() == []

    @pytest.mark.parametrize("overrides, fragment", [
        ({"symbols": []}, "No symbols"),
        ({"symbols": ["BTCUSDT", "  "]}, "Invalid symbol"),
        ({"symbols": [None]}, "Invalid symbol"),
        ({"timeframe": "7h"}, "Invalid timeframe"),
        ({"strategies": []}, "No strategies"),
        ({"start_date": "2024-02-01", "end_date": "2024-01-01"}, "start_date"),
        ({"start_date": "not a date"}, "Invalid date"),
        ({"initial_balance": 0}, "initial_balance"),
        ({"fee_rate": -0.01}, "fee_rate"),
        ({"fee_rate": 1.5}, "fee_rate"),
        ({"position_size_fraction": 0}, "position_size_fraction"),
        ({"history_window": 0}, "history_window"),
        ({"max_workers": 0}, "max_workers"),
    ])
    def test_issues(self, overrides, fragment):
        issues = make_config(**overrides).validate()
        assert any(fragment in issue for issue in issues)

    def test_zero_fee_valid(self):
        assert make_config(fee_rate=0).validate() == []

    def test_raise_for_issues(self):
        with pytest.raises(InvalidConfigurationError):
            make_config(symbols=[]).raise_for_issues()

    def test_dict_round_trip(self):
        config = make_config(strategies=[DCA, GRID], symbols=["BTCUSDT", "ETHUSDT"])
        restored = BacktestConfig.from_dict(config.to_dict())
        assert restored == config

    def test_dict_covers_every_field(self):
        """Every field is serialized and nothing else."""
        assert set(BacktestConfig().to_dict()) == {f.name for f in fields(BacktestConfig)}

    def test_from_dict_rejects_output_dir(self):
        with pytest.raises(InvalidConfigurationError):
            BacktestConfig.from_dict({"output_dir": "data/backtests"})

    def test_from_dict_accepts_strategy_names(self):
        config = BacktestConfig.from_dict({"strategies": ["grid", "DCA"]})
        assert [s.type for s in config.strategies] == [StrategyType.GRID, StrategyType.DCA]

    def test_from_dict_rejects_unknown_fields(self):
        with pytest.raises(InvalidConfigurationError):
            BacktestConfig.from_dict({"leverage": 10})


# =============================================================================
# ENGINE: SINGLE RUNS
# =============================================================================


class TestEngineRun:
    """Tests for BacktestEngine.run()."""

    def test_invalid_config_rejected_at_construction(self):
        with pytest.raises(InvalidConfigurationError):
            BacktestEngine(make_config(fee_rate=-1), candle_source=StaticCandleSource([]))

    def test_runs_single_job(self, candles):
        source = StaticCandleSource(candles)
        result = BacktestEngine(make_config(), candle_source=source).run()

        assert result.symbol == "BTCUSDT"
        assert result.timeframe == "1h"
        assert result.strategy == "dca"
        assert result.candle_count == 48
        assert result.synthetic is False
        assert result.data_origin == "binance"
        assert result.total_trades == 1
        assert source.calls == ["BTCUSDT"]

    def test_no_silent_fallback(self):
        """A failed fetch fails the run unless fallback is opted into."""
        source = StaticCandleSource([], fail_for=["BTCUSDT"], error=DataSourceError("down"))
        engine = BacktestEngine(make_config(), candle_source=source)
        with pytest.raises(DataSourceError):
            engine.run()

    def test_opt_in_fallback_flags_synthetic(self):
        source = StaticCandleSource([], fail_for=["BTCUSDT"], error=DataSourceError("down"))
        engine = BacktestEngine(
            make_config(allow_synthetic_fallback=True),
            candle_source=source,
            fallback_source=SyntheticCandleSource(seed=3),
        )
        result = engine.run()

        assert result.synthetic is True
        assert result.data_origin == DataOrigin.SYNTHETIC.value
        assert result.candle_count == 48
        assert "SYNTHETIC" in result.summary()

    def test_too_few_candles_for_strategy(self, candles):
        """Technical needs 50 history candles; 48 is a data error."""
        engine = BacktestEngine(
            make_config(strategies=[TECHNICAL]), candle_source=StaticCandleSource(candles)
        )
        with pytest.raises(DataSourceError, match="need at least 51"):
            engine.run()

    def test_fresh_strategy_per_run(self, candles):
        """Running the same DCA job twice gives identical results."""
        engine = BacktestEngine(make_config(), candle_source=StaticCandleSource(candles))
        job = engine.jobs_from_config()[0]
        assert engine.run(job).to_dict() == engine.run(job).to_dict()

    def test_run_requires_job_when_ambiguous(self, candles):
        engine = BacktestEngine(
            make_config(symbols=["BTCUSDT", "ETHUSDT"]), candle_source=StaticCandleSource(candles)
        )
        with pytest.raises(InvalidConfigurationError):
            engine.run()

    def test_simulator_settings_applied(self, candles):
        config = make_config(fee_rate=0, position_size_fraction=0.5, initial_balance=1000)
        result = BacktestEngine(config, candle_source=StaticCandleSource(candles)).run()
        trade = result.trades[0]
        assert trade.quantity == pytest.approx(1000 * 0.5 / candles[0].close)
        assert trade.fees == 0


# =============================================================================
# ENGINE: BATCHES
# =============================================================================


class TestEngineBatch:
    """Tests for jobs_from_config() and run_many()."""

    def test_job_expansion(self, candles):
        config = make_config(symbols=["BTCUSDT", "ETHUSDT"], strategies=[DCA, GRID])
        jobs = BacktestEngine(config, candle_source=StaticCandleSource(candles)).jobs_from_config()

        assert len(jobs) == 4
        assert [(j.symbol, j.strategy.name) for j in jobs] == [
            ("BTCUSDT", "dca"), ("BTCUSDT", "grid"), ("ETHUSDT", "dca"), ("ETHUSDT", "grid"),
        ]
        assert jobs[0].label == "BTCUSDT 1h dca"

    def test_failure_isolated(self, candles):
        source = StaticCandleSource(candles, fail_for=["BADUSDT"], error=DataSourceError("bad"))
        config = make_config(symbols=["BTCUSDT", "BADUSDT", "ETHUSDT"])
        outcomes = BacktestEngine(config, candle_source=source).run_all()

        assert [o.job.symbol for o in outcomes] == ["BTCUSDT", "BADUSDT", "ETHUSDT"]
        assert [o.ok for o in outcomes] == [True, False, True]
        assert isinstance(outcomes[1].error, DataSourceError)
        assert outcomes[1].result is None

    def test_bad_strategy_params_isolated(self, candles):
        bad = StrategySpec(StrategyType.GRID, {"grid_spacing": -1})
        config = make_config(strategies=[DCA, bad])
        outcomes = BacktestEngine(config, candle_source=StaticCandleSource(candles)).run_all()

        assert outcomes[0].ok
        assert isinstance(outcomes[1].error, InvalidConfigurationError)

    def test_invalid_symbol_isolated(self):
        """A symbol that normalizes to nothing fails only its own job."""
        engine = BacktestEngine(
            make_config(symbols=["BTCUSDT", "/"]), candle_source=SyntheticCandleSource(seed=1)
        )
        outcomes = engine.run_all()

        assert [o.job.symbol for o in outcomes] == ["BTCUSDT", "/"]
        assert outcomes[0].ok
        assert isinstance(outcomes[1].error, InvalidConfigurationError)

    def test_parallel_matches_sequential(self, candles):
        config = make_config(symbols=["A", "B", "C", "D"], strategies=[DCA, GRID])
        engine = BacktestEngine(config, candle_source=StaticCandleSource(candles))
        jobs = engine.jobs_from_config()

        parallel = engine.run_many(jobs, max_workers=4)
        sequential = engine.run_many(jobs, max_workers=1)
        assert [o.result.to_dict() for o in parallel] == [o.result.to_dict() for o in sequential]

    def test_empty_batch(self, candles):
        engine = BacktestEngine(make_config(), candle_source=StaticCandleSource(candles))
        assert engine.run_many([]) == []

    def test_cancelled_batch(self, candles):
        token = CancellationToken()
        token.cancel()
        engine = BacktestEngine(make_config(symbols=["A", "B"]), candle_source=StaticCandleSource(candles))
        outcomes = engine.run_all(cancel_token=token)

        assert all(isinstance(o.error, BacktestCancelledError) for o in outcomes)

    def test_outcome_ok_flag(self, candles):
        engine = BacktestEngine(make_config(), candle_source=StaticCandleSource(candles))
        job = engine.jobs_from_config()[0]
        assert BacktestOutcome(job=job).ok is False
