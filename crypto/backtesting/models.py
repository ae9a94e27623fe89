"""
Data models for crypto backtesting.

Candle, Position and Trade are plain dataclasses; Candle and Trade are
frozen because they are never modified once produced.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

OHLCV_COLUMNS = ["open", "high", "low", "close", "volume"]


class Signal(str, Enum):
    """Strategy decision for the current candle."""
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class ExitReason(str, Enum):
    """Why a position was closed."""
    SIGNAL = "SIGNAL"
    END_OF_DATA = "END_OF_DATA"


class DataOrigin(str, Enum):
    """Where a candle series came from."""
    BINANCE = "binance"
    SYNTHETIC = "synthetic"
    UNKNOWN = "unknown"  # plain candle lists with no stated source


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open


@dataclass
class Position:
    """The single open long position held by the simulator."""

    quantity: float
    entry_price: float
    entry_time: datetime
    entry_fee: float = 0.0

    @property
    def entry_value(self) -> float:
        return self.quantity * self.entry_price

    def market_value(self, price: float) -> float:
        return self.quantity * price


@dataclass(frozen=True)
class Trade:
    """A closed round trip. Created once per position closed."""

    entry_time: datetime
    exit_time: datetime
    entry_price: float
    exit_price: float
    quantity: float
    side: str  # always 'buy' (long only)
    profit: float
    profit_percent: float
    fees: float  # entry + exit
    exit_reason: ExitReason = ExitReason.SIGNAL

    @property
    def is_winner(self) -> bool:
        return self.profit > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat(),
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "quantity": self.quantity,
            "side": self.side,
            "profit": self.profit,
            "profit_percent": self.profit_percent,
            "fees": self.fees,
            "exit_reason": self.exit_reason.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trade":
        """Create from dictionary."""
        return cls(
            entry_time=datetime.fromisoformat(data["entry_time"]),
            exit_time=datetime.fromisoformat(data["exit_time"]),
            entry_price=float(data["entry_price"]),
            exit_price=float(data["exit_price"]),
            quantity=float(data["quantity"]),
            side=data.get("side", "buy"),
            profit=float(data["profit"]),
            profit_percent=float(data["profit_percent"]),
            fees=float(data.get("fees", 0.0)),
            exit_reason=ExitReason(data.get("exit_reason", ExitReason.SIGNAL.value)),
        )


@dataclass
class SimulationState:
    """Mutable per-run state owned by one Simulator.run() call."""

    balance: float
    peak_balance: float
    max_drawdown: float = 0.0  # fraction, 0.25 = 25%
    position: Optional[Position] = None

    @property
    def is_flat(self) -> bool:
        return self.position is None


@dataclass(frozen=True)
class CandleSeries:
    """
    Candles plus their origin.

    The origin keeps real exchange data and generated demo data apart all
    the way to the final result.
    """

    symbol: str
    timeframe: str
    candles: Tuple[Candle, ...] = field(default_factory=tuple)
    origin: DataOrigin = DataOrigin.BINANCE
    truncated: bool = False

    @property
    def synthetic(self) -> bool:
        return self.origin is DataOrigin.SYNTHETIC

    def __len__(self) -> int:
        return len(self.candles)

    def __iter__(self):
        return iter(self.candles)

    def to_frame(self) -> pd.DataFrame:
        """OHLCV DataFrame indexed by UTC datetime."""
        return candles_to_frame(self.candles)


def candles_from_frame(df: pd.DataFrame) -> List[Candle]:
    """
    Build candles from an OHLCV DataFrame.

    Expects a DatetimeIndex and lower-case open/high/low/close/volume
    columns (the format returned by BinanceClient.get_historical_ohlcv).
    """
    if df is None or df.empty:
        return []

    candles = []
    for ts, row in df[OHLCV_COLUMNS].sort_index().iterrows():
        if hasattr(ts, "to_pydatetime"):
            ts = ts.to_pydatetime()
        candles.append(
            Candle(
                timestamp=ts,
                open=float(row["open"]),
                high=float(row["high"]),
                low=float(row["low"]),
                close=float(row["close"]),
                volume=float(row["volume"]),
            )
        )
    return candles


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """Inverse of candles_from_frame."""
    if not candles:
        return pd.DataFrame(columns=OHLCV_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "datetime": c.timestamp,
                "open": c.open,
                "high": c.high,
                "low": c.low,
                "close": c.close,
                "volume": c.volume,
            }
            for c in candles
        ]
    )
    return df.set_index("datetime")[OHLCV_COLUMNS]
