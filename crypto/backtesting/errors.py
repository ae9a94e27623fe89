"""
Backtest error hierarchy.

All errors raised by the backtesting pipeline derive from BacktestError so
batch callers can isolate a failed run with a single except clause.
"""


class BacktestError(Exception):
    """Base class for backtesting errors."""


class DataSourceError(BacktestError):
    """
    Historical candles could not be obtained.

    Raised when the exchange request fails, the payload is malformed,
    no candles come back, or fewer candles arrive than a strategy needs.
    """

    def __init__(self, message: str, symbol: str = "", timeframe: str = ""):
        super().__init__(message)
        self.symbol = symbol
        self.timeframe = timeframe


class InsufficientHistoryError(BacktestError):
    """
    An indicator received fewer prices than its period requires.

    Strategies catch this and return HOLD.
    """

    def __init__(self, required: int, available: int):
        super().__init__(f"Need {required} prices, got {available}")
        self.required = required
        self.available = available


class InvalidConfigurationError(BacktestError, ValueError):
    """Simulator or strategy parameters are out of range."""


class BacktestCancelledError(BacktestError):
    """A run was aborted through its CancellationToken."""

    def __init__(self, processed: int, total: int):
        super().__init__(f"Backtest cancelled after {processed}/{total} candles")
        self.processed = processed
        self.total = total
