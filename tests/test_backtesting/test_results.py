"""
Tests for crypto/backtesting/analytics/results.py and export.py

Covers:
- Win/loss classification and totals
- Profit factor edge cases
- Sharpe ratio (population std, sqrt(252) scaling)
- JSON round-trip
- CSV export format
"""

import json
import math
from datetime import datetime, timedelta, timezone

import pytest

from crypto.backtesting.analytics.export import (
    CSV_COLUMNS,
    export_result_json,
    export_trades_csv,
    load_result_json,
)
from crypto.backtesting.analytics.results import BacktestResult, ResultAggregator
from crypto.backtesting.models import ExitReason, Trade

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_trade(profit, profit_percent=None, fees=0.0, hours=0):
    entry = T0 + timedelta(hours=hours)
    return Trade(
        entry_time=entry,
        exit_time=entry + timedelta(hours=1),
        entry_price=100.0,
        exit_price=100.0 + profit,
        quantity=1.0,
        side="buy",
        profit=profit,
        profit_percent=profit if profit_percent is None else profit_percent,
        fees=fees,
        exit_reason=ExitReason.SIGNAL,
    )


# =============================================================================
# AGGREGATION
# =============================================================================


class TestAggregation:
    """Tests for ResultAggregator.aggregate()."""

    def test_classifies_wins_and_losses(self):
        """Zero-profit trades count as losses."""
        trades = [make_trade(10.0), make_trade(-5.0), make_trade(0.0)]
        result = ResultAggregator.aggregate(trades, 1000.0, 1005.0)

        assert result.total_trades == 3
        assert result.winning_trades == 1
        assert result.losing_trades == 2
        assert result.total_profit == pytest.approx(10.0)
        assert result.total_loss == pytest.approx(5.0)
        assert result.profit_factor == pytest.approx(2.0)
        assert result.win_rate == pytest.approx(100 / 3)
        assert result.net_profit == pytest.approx(5.0)

    def test_profit_factor_without_losses(self):
        result = ResultAggregator.aggregate([make_trade(4.0), make_trade(6.0)], 100.0, 110.0)
        assert result.total_loss == 0
        assert result.profit_factor == pytest.approx(10.0)

    def test_no_trades(self):
        result = ResultAggregator.aggregate([], 1000.0, 1000.0)

        assert result.total_trades == 0
        assert result.win_rate == 0
        assert result.profit_factor == 0
        assert result.sharpe_ratio == 0
        assert result.net_profit == 0
        assert not math.isnan(result.win_rate)

    def test_only_breakeven_trades(self):
        """0 / 0 profit factor is 0, not NaN."""
        result = ResultAggregator.aggregate([make_trade(0.0), make_trade(0.0)], 100.0, 100.0)
        assert result.profit_factor == 0
        assert result.losing_trades == 2

    def test_drawdown_converted_to_percent(self):
        result = ResultAggregator.aggregate([], 1000.0, 1000.0, max_drawdown=0.125)
        assert result.max_drawdown == pytest.approx(12.5)

    def test_total_fees_summed(self):
        trades = [make_trade(1.0, fees=0.2), make_trade(-1.0, fees=0.3)]
        result = ResultAggregator.aggregate(trades, 100.0, 100.0)
        assert result.total_fees == pytest.approx(0.5)

    def test_metadata_applied(self):
        result = ResultAggregator.aggregate(
            [], 100.0, 100.0, symbol="ETHUSDT", timeframe="4h", strategy="grid",
            candle_count=42, data_origin="synthetic", synthetic=True,
        )
        assert result.symbol == "ETHUSDT"
        assert result.candle_count == 42
        assert result.synthetic is True

    def test_unknown_metadata_rejected(self):
        with pytest.raises(TypeError):
            ResultAggregator.aggregate([], 100.0, 100.0, colour="blue")


class TestSharpeRatio:
    """Tests for ResultAggregator.sharpe_ratio()."""

    def test_population_std(self):
        """Returns [1, 3]: mean 2, population std 1."""
        assert ResultAggregator.sharpe_ratio([1.0, 3.0]) == pytest.approx(2 * math.sqrt(252))

    def test_single_trade_is_zero(self):
        assert ResultAggregator.sharpe_ratio([5.0]) == 0.0

    def test_identical_returns_is_zero(self):
        assert ResultAggregator.sharpe_ratio([0.1, 0.1, 0.1]) == 0.0

    def test_empty_is_zero(self):
        assert ResultAggregator.sharpe_ratio([]) == 0.0

    def test_negative_mean(self):
        assert ResultAggregator.sharpe_ratio([-1.0, -3.0]) == pytest.approx(-2 * math.sqrt(252))

    def test_uses_profit_percent(self):
        trades = [make_trade(10.0, profit_percent=1.0), make_trade(20.0, profit_percent=3.0)]
        result = ResultAggregator.aggregate(trades, 100.0, 130.0)
        assert result.sharpe_ratio == pytest.approx(2 * math.sqrt(252))


# =============================================================================
# SERIALIZATION
# =============================================================================


@pytest.fixture
def sample_result():
    trades = [
        make_trade(12.345678901, fees=0.2, hours=0),
        make_trade(-3.25, fees=0.19, hours=5),
    ]
    return ResultAggregator.aggregate(
        trades, 10000.0, 10009.095678901, max_drawdown=0.0321,
        symbol="BTCUSDT", timeframe="1h", strategy="dca", candle_count=48,
    )


class TestSerialization:
    """Tests for BacktestResult JSON round-trip."""

    def test_json_round_trip(self, sample_result):
        restored = BacktestResult.from_json(sample_result.to_json())

        assert restored.total_trades == sample_result.total_trades
        assert restored.winning_trades == sample_result.winning_trades
        assert restored.losing_trades == sample_result.losing_trades
        for name in ("total_profit", "total_loss", "net_profit", "win_rate",
                     "profit_factor", "max_drawdown", "sharpe_ratio"):
            assert getattr(restored, name) == pytest.approx(getattr(sample_result, name), abs=1e-9)
        assert restored.trades == sample_result.trades

    def test_timestamps_are_iso(self, sample_result):
        data = json.loads(sample_result.to_json())
        assert data["trades"][0]["entry_time"] == "2024-01-01T00:00:00+00:00"
        assert data["trades"][0]["exit_reason"] == "SIGNAL"

    def test_trade_round_trip(self):
        trade = make_trade(1.5)
        assert Trade.from_dict(trade.to_dict()) == trade

    def test_json_file_round_trip(self, sample_result, tmp_path):
        path = export_result_json(sample_result, tmp_path / "out" / "result.json")
        assert path.exists()
        assert load_result_json(path).to_dict() == sample_result.to_dict()

    def test_summary(self, sample_result):
        text = sample_result.summary()
        assert "BACKTEST RESULTS: BTCUSDT 1h (dca)" in text
        assert "Total Trades:  2" in text
        assert "SYNTHETIC" not in text

    def test_summary_flags_synthetic(self):
        result = BacktestResult(synthetic=True, data_origin="synthetic")
        assert "SYNTHETIC DATA" in result.summary()

    def test_trades_df(self, sample_result):
        df = sample_result.trades_df()
        assert len(df) == 2
        assert list(df["profit"]) == [t.profit for t in sample_result.trades]

    def test_trades_df_empty(self):
        df = BacktestResult().trades_df()
        assert df.empty
        assert "profit" in df.columns


class TestCsvExport:
    """Tests for export_trades_csv()."""

    def test_header_and_rows(self, sample_result):
        content = export_trades_csv(sample_result)
        lines = content.strip().split("\n")

        assert lines[0] == "Entry Time,Exit Time,Entry Price,Exit Price,Quantity,Side,Profit,Profit %,Fees"
        assert len(lines) == 1 + len(sample_result.trades)
        assert lines[1].startswith("2024-01-01T00:00:00+00:00,2024-01-01T01:00:00+00:00,100.0,")
        assert ",buy," in lines[1]

    def test_writes_file(self, sample_result, tmp_path):
        path = tmp_path / "nested" / "trades.csv"
        content = export_trades_csv(sample_result, path)
        assert path.read_text(encoding="utf-8") == content

    def test_no_trades_writes_header_only(self):
        content = export_trades_csv(BacktestResult())
        assert content.strip() == ",".join(CSV_COLUMNS)
