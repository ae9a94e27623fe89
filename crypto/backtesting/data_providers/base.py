"""
Candle Source Protocol

Defines the interface for loading historical candles during backtests.
Implementations include Binance (real exchange klines) and Synthetic
(seeded random walk for demos and offline runs).
"""

from datetime import date, datetime, timezone
from typing import Protocol, Union

from crypto.backtesting.errors import DataSourceError, InvalidConfigurationError
from crypto.backtesting.models import CandleSeries
from crypto.config import TIMEFRAME_SECONDS

DateLike = Union[str, date, datetime]


class CandleSource(Protocol):
    """
    Protocol for historical candle loading.

    Two implementations:
    - BinanceCandleSource: Binance public klines
    - SyntheticCandleSource: seeded random walk, flagged synthetic
    """

    def load(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> CandleSeries:
        """
        Load candles for [start, end], oldest first.

        Raises:
            DataSourceError: candles could not be obtained
        """
        ...


def to_utc_datetime(value: DateLike) -> datetime:
    """
    Parse a date or datetime into an aware UTC datetime.

    Strings accept 'YYYY-MM-DD' and ISO-8601. Naive values are taken as UTC.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidConfigurationError(f"Invalid date {value!r}: {e}") from e
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)

    if not isinstance(value, datetime):
        raise InvalidConfigurationError(f"Expected a date or datetime, got {value!r}")

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_millis(value: datetime) -> int:
    return int(to_utc_datetime(value).timestamp() * 1000)


def timeframe_seconds(timeframe: str) -> int:
    """Length of one candle in seconds."""
    try:
        return TIMEFRAME_SECONDS[timeframe]
    except KeyError:
        valid = ", ".join(TIMEFRAME_SECONDS)
        raise InvalidConfigurationError(f"Unknown timeframe {timeframe!r}. Valid: {valid}")


def require_candles(series: CandleSeries, minimum: int) -> CandleSeries:
    """
    Ensure a series holds at least `minimum` candles.

    Raises:
        DataSourceError: too few candles for the requesting strategy
    """
    if len(series) < minimum:
        raise DataSourceError(
            f"Got {len(series)} candles for {series.symbol} {series.timeframe}, "
            f"need at least {minimum}",
            symbol=series.symbol,
            timeframe=series.timeframe,
        )
    return series
