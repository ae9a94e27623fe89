"""
Trade history and result export.

CSV columns match the dashboard's trade-history download:
    Entry Time,Exit Time,Entry Price,Exit Price,Quantity,Side,Profit,Profit %,Fees
"""

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from crypto.backtesting.analytics.results import BacktestResult

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Entry Time",
    "Exit Time",
    "Entry Price",
    "Exit Price",
    "Quantity",
    "Side",
    "Profit",
    "Profit %",
    "Fees",
]


def trades_to_csv_frame(result: BacktestResult) -> pd.DataFrame:
    """Trades laid out with the CSV export column names."""
    rows = [
        {
            "Entry Time": t.entry_time.isoformat(),
            "Exit Time": t.exit_time.isoformat(),
            "Entry Price": t.entry_price,
            "Exit Price": t.exit_price,
            "Quantity": t.quantity,
            "Side": t.side,
            "Profit": t.profit,
            "Profit %": t.profit_percent,
            "Fees": t.fees,
        }
        for t in result.trades
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def export_trades_csv(
    result: BacktestResult,
    path: Optional[Union[str, Path]] = None,
) -> str:
    """
    Render trades as CSV, optionally writing them to path.

    Args:
        result: Completed backtest
        path: Destination file; parent directories are created

    Returns:
        CSV text (header plus one line per trade)
    """
    content = trades_to_csv_frame(result).to_csv(index=False, lineterminator="\n")

    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info("Exported %d trades to %s", len(result.trades), path)

    return content


def export_result_json(result: BacktestResult, path: Union[str, Path]) -> Path:
    """Write the full result (summary and trades) as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(result.to_json(), encoding="utf-8")
    logger.info("Saved backtest result to %s", path)
    return path


def load_result_json(path: Union[str, Path]) -> BacktestResult:
    """Read a result written by export_result_json."""
    return BacktestResult.from_json(Path(path).read_text(encoding="utf-8"))
