"""
Backtest result aggregation and export.
"""

from crypto.backtesting.analytics.export import (
    CSV_COLUMNS,
    export_result_json,
    export_trades_csv,
    load_result_json,
)
from crypto.backtesting.analytics.results import BacktestResult, ResultAggregator

__all__ = [
    "BacktestResult",
    "ResultAggregator",
    "CSV_COLUMNS",
    "export_result_json",
    "export_trades_csv",
    "load_result_json",
]
