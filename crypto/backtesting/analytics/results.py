"""
Results Aggregator - Summary Stats and Serialization

Reduces the closed trades of one simulator run into BacktestResult:
- Win/loss counts and win rate
- Gross profit, gross loss, profit factor
- Net profit from the final balance
- Max drawdown (carried from the simulator)
- Sharpe ratio over per-trade percent returns
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np
import pandas as pd

from crypto.backtesting.models import Trade
from crypto.config import SHARPE_ANNUALIZATION_DAYS

logger = logging.getLogger(__name__)

# Standard deviations below this are treated as zero (identical returns)
_STD_EPSILON = 1e-12


@dataclass
class BacktestResult:
    """
    Complete backtest result with summary statistics.

    Produced by ResultAggregator.aggregate() after simulation. Plain data,
    JSON-serializable through to_dict()/to_json().

    Percent fields (win_rate, max_drawdown) are on a 0-100 scale.

    sharpe_ratio is mean / std of per-trade profit_percent scaled by
    sqrt(252). The 252 assumes daily returns while trades here span
    arbitrary intervals, so treat it as a relative score, not a true
    annualized Sharpe.
    """

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_profit: float = 0.0
    total_loss: float = 0.0
    net_profit: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    max_drawdown: float = 0.0
    sharpe_ratio: float = 0.0
    trades: List[Trade] = field(default_factory=list)

    # Run metadata
    symbol: str = ""
    timeframe: str = ""
    strategy: str = ""
    initial_balance: float = 0.0
    final_balance: float = 0.0
    total_fees: float = 0.0
    candle_count: int = 0
    data_origin: str = "unknown"
    synthetic: bool = False

    @property
    def return_pct(self) -> float:
        if self.initial_balance <= 0:
            return 0.0
        return self.net_profit / self.initial_balance * 100

    def summary(self) -> str:
        """Human-readable summary string."""
        title = "BACKTEST RESULTS"
        if self.symbol:
            title += f": {self.symbol} {self.timeframe} ({self.strategy})"
        lines = [
            "=" * 60,
            title,
            "=" * 60,
        ]
        if self.synthetic:
            lines.append("*** SYNTHETIC DATA - not a real market backtest ***")
        lines.extend([
            f"Candles:       {self.candle_count}",
            f"Total Trades:  {self.total_trades}",
            f"Winning:       {self.winning_trades}",
            f"Losing:        {self.losing_trades}",
            f"Win Rate:      {self.win_rate:.1f}%",
            f"Total Profit:  ${self.total_profit:,.2f}",
            f"Total Loss:    ${self.total_loss:,.2f}",
            f"Net Profit:    ${self.net_profit:,.2f} ({self.return_pct:.2f}%)",
            f"Fees Paid:     ${self.total_fees:,.2f}",
            f"Profit Factor: {self.profit_factor:.2f}",
            f"Max Drawdown:  {self.max_drawdown:.2f}%",
            f"Sharpe Ratio:  {self.sharpe_ratio:.2f}",
            f"Balance:       ${self.initial_balance:,.2f} -> ${self.final_balance:,.2f}",
            "=" * 60,
        ])
        return "\n".join(lines)

    def trades_df(self) -> pd.DataFrame:
        """Trades as a DataFrame for further analysis."""
        if not self.trades:
            return pd.DataFrame(columns=[
                "entry_time", "exit_time", "entry_price", "exit_price", "quantity",
                "side", "profit", "profit_percent", "fees", "exit_reason",
            ])
        rows = []
        for t in self.trades:
            row = t.to_dict()
            row["entry_time"] = t.entry_time
            row["exit_time"] = t.exit_time
            rows.append(row)
        return pd.DataFrame(rows)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total_trades": self.total_trades,
            "winning_trades": self.winning_trades,
            "losing_trades": self.losing_trades,
            "total_profit": self.total_profit,
            "total_loss": self.total_loss,
            "net_profit": self.net_profit,
            "win_rate": self.win_rate,
            "profit_factor": self.profit_factor,
            "max_drawdown": self.max_drawdown,
            "sharpe_ratio": self.sharpe_ratio,
            "trades": [t.to_dict() for t in self.trades],
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "strategy": self.strategy,
            "initial_balance": self.initial_balance,
            "final_balance": self.final_balance,
            "total_fees": self.total_fees,
            "candle_count": self.candle_count,
            "data_origin": self.data_origin,
            "synthetic": self.synthetic,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BacktestResult":
        """Create from dictionary."""
        return cls(
            total_trades=int(data.get("total_trades", 0)),
            winning_trades=int(data.get("winning_trades", 0)),
            losing_trades=int(data.get("losing_trades", 0)),
            total_profit=float(data.get("total_profit", 0.0)),
            total_loss=float(data.get("total_loss", 0.0)),
            net_profit=float(data.get("net_profit", 0.0)),
            win_rate=float(data.get("win_rate", 0.0)),
            profit_factor=float(data.get("profit_factor", 0.0)),
            max_drawdown=float(data.get("max_drawdown", 0.0)),
            sharpe_ratio=float(data.get("sharpe_ratio", 0.0)),
            trades=[Trade.from_dict(t) for t in data.get("trades", [])],
            symbol=data.get("symbol", ""),
            timeframe=data.get("timeframe", ""),
            strategy=data.get("strategy", ""),
            initial_balance=float(data.get("initial_balance", 0.0)),
            final_balance=float(data.get("final_balance", 0.0)),
            total_fees=float(data.get("total_fees", 0.0)),
            candle_count=int(data.get("candle_count", 0)),
            data_origin=data.get("data_origin", "unknown"),
            synthetic=bool(data.get("synthetic", False)),
        )

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "BacktestResult":
        return cls.from_dict(json.loads(text))


class ResultAggregator:
    """Reduces a simulator run into BacktestResult."""

    @staticmethod
    def aggregate(
        trades: Sequence[Trade],
        initial_balance: float,
        final_balance: float,
        max_drawdown: float = 0.0,
        **metadata: Any,
    ) -> BacktestResult:
        """
        Build a BacktestResult from closed trades.

        Args:
            trades: Closed trades in the order they were recorded
            initial_balance: Starting cash
            final_balance: Cash after the final forced close
            max_drawdown: Peak-to-trough decline as a fraction (0.1 = 10%)
            **metadata: symbol, timeframe, strategy, candle_count,
                data_origin, synthetic

        Returns:
            BacktestResult with all statistics computed
        """
        trades = list(trades)
        winners = [t.profit for t in trades if t.profit > 0]
        losers = [t.profit for t in trades if t.profit <= 0]

        total_profit = float(sum(winners))
        total_loss = float(abs(sum(losers)))
        total_trades = len(trades)

        if total_loss > 0:
            profit_factor = total_profit / total_loss
        else:
            profit_factor = total_profit

        result = BacktestResult(
            total_trades=total_trades,
            winning_trades=len(winners),
            losing_trades=len(losers),
            total_profit=total_profit,
            total_loss=total_loss,
            net_profit=final_balance - initial_balance,
            win_rate=len(winners) / total_trades * 100 if total_trades else 0.0,
            profit_factor=profit_factor,
            max_drawdown=max_drawdown * 100,
            sharpe_ratio=ResultAggregator.sharpe_ratio([t.profit_percent for t in trades]),
            trades=trades,
            initial_balance=initial_balance,
            final_balance=final_balance,
            total_fees=float(sum(t.fees for t in trades)),
        )

        for key, value in metadata.items():
            if not hasattr(result, key):
                raise TypeError(f"Unknown result field: {key}")
            setattr(result, key, value)

        return result

    @staticmethod
    def sharpe_ratio(returns_pct: Sequence[float]) -> float:
        """
        Mean / population std of per-trade percent returns times sqrt(252).

        Returns 0.0 with no returns or zero dispersion.
        """
        if not returns_pct:
            return 0.0
        returns = np.asarray(returns_pct, dtype=float)
        std = returns.std()
        if std <= _STD_EPSILON:
            return 0.0
        return float(returns.mean() / std * np.sqrt(SHARPE_ANNUALIZATION_DAYS))
