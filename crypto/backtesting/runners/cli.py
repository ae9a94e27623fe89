"""
CLI Entry Point for the crypto backtester

Usage:
    python -m crypto.backtesting.runners.cli --symbol BTCUSDT --strategy dca
    python -m crypto.backtesting.runners.cli --symbol BTCUSDT ETHUSDT --strategy grid \\
        --param grid_spacing=0.02 --timeframe 4h --start 2024-01-01 --end 2024-06-01
    python -m crypto.backtesting.runners.cli --strategy technical --synthetic --seed 7
    python -m crypto.backtesting.runners.cli --config path/to/config.json --json out/result.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import get_log_level
from crypto.backtesting.analytics.export import export_result_json, export_trades_csv
from crypto.backtesting.config import BacktestConfig
from crypto.backtesting.data_providers.synthetic_provider import SyntheticCandleSource
from crypto.backtesting.engine import BacktestEngine, BacktestOutcome
from crypto.backtesting.errors import BacktestError, InvalidConfigurationError
from crypto.backtesting.strategies.factory import StrategySpec, StrategyType, parse_strategy_type
from crypto.config import (
    DEFAULT_FEE_RATE,
    DEFAULT_INITIAL_BALANCE,
    DEFAULT_SYMBOL,
    DEFAULT_TIMEFRAME,
    TIMEFRAME_SECONDS,
)

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Crypto Strategy Backtester',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Data selection
    parser.add_argument('--symbol', '-s', nargs='+', default=[DEFAULT_SYMBOL],
                        help=f'Symbols to backtest (default: {DEFAULT_SYMBOL})')
    parser.add_argument('--timeframe', '-t', default=DEFAULT_TIMEFRAME,
                        choices=list(TIMEFRAME_SECONDS),
                        help=f'Candle interval (default: {DEFAULT_TIMEFRAME})')
    parser.add_argument('--start', default='2024-01-01',
                        help='Start date YYYY-MM-DD (default: 2024-01-01)')
    parser.add_argument('--end', default='2024-02-01',
                        help='End date YYYY-MM-DD (default: 2024-02-01)')

    # Strategy
    parser.add_argument('--strategy', default=StrategyType.DCA.value,
                        choices=[t.value for t in StrategyType],
                        help='Strategy to run (default: dca)')
    parser.add_argument('--param', '-p', action='append', default=[], metavar='KEY=VALUE',
                        help='Strategy parameter, repeatable (values parsed as JSON)')

    # Simulator
    parser.add_argument('--balance', type=float, default=DEFAULT_INITIAL_BALANCE,
                        help=f'Initial balance (default: {DEFAULT_INITIAL_BALANCE:g})')
    parser.add_argument('--fee-rate', type=float, default=DEFAULT_FEE_RATE,
                        help=f'Fee per leg as a fraction (default: {DEFAULT_FEE_RATE})')

    # Data source
    parser.add_argument('--synthetic-fallback', action='store_true',
                        help='Use synthetic candles if Binance data is unavailable')
    parser.add_argument('--synthetic', action='store_true',
                        help='Use synthetic candles only (no network)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Seed for synthetic candles')

    # Output
    parser.add_argument('--json', type=str, default=None,
                        help='Write the full result as JSON to this path')
    parser.add_argument('--csv', type=str, default=None,
                        help='Export trades as CSV to this path')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose logging')

    # Config file
    parser.add_argument('--config', type=str,
                        help='Path to JSON config file (overrides other args)')

    return parser.parse_args(argv)


def parse_params(pairs: List[str]) -> Dict[str, Any]:
    """
    Parse KEY=VALUE strategy parameters.

    Values are decoded as JSON where possible ('24' -> 24, '[...]' -> list)
    and kept as strings otherwise.
    """
    params: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition('=')
        key = key.strip()
        if not sep or not key:
            raise InvalidConfigurationError(f"Expected KEY=VALUE, got {pair!r}")
        try:
            params[key] = json.loads(raw)
        except ValueError:
            params[key] = raw
    return params


def build_config(args) -> BacktestConfig:
    """Build BacktestConfig from CLI arguments."""
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            raise InvalidConfigurationError(f"Config file not found: {config_path}")
        with open(config_path) as f:
            data = json.load(f)
        return BacktestConfig.from_dict(data)

    return BacktestConfig(
        symbols=args.symbol,
        timeframe=args.timeframe,
        start_date=args.start,
        end_date=args.end,
        strategies=[StrategySpec(parse_strategy_type(args.strategy), parse_params(args.param))],
        initial_balance=args.balance,
        fee_rate=args.fee_rate,
        allow_synthetic_fallback=args.synthetic_fallback,
        synthetic_seed=args.seed,
    )


def build_engine(args, config: BacktestConfig) -> BacktestEngine:
    """Engine with the candle source the flags ask for."""
    if args.synthetic:
        return BacktestEngine(config, candle_source=SyntheticCandleSource(seed=args.seed))
    return BacktestEngine(config)


def _output_path(base: str, outcome: BacktestOutcome, index: int, multiple: bool) -> Path:
    path = Path(base)
    if not multiple:
        return path
    # index keeps jobs with the same symbol and strategy type apart
    job = outcome.job
    return path.with_name(f"{path.stem}_{index}_{job.symbol}_{job.strategy.name}{path.suffix}")


def write_outputs(args, outcomes: List[BacktestOutcome]) -> None:
    """Write JSON/CSV files for successful outcomes."""
    multiple = sum(1 for o in outcomes if o.ok) > 1
    for index, outcome in enumerate(outcomes, start=1):
        if not outcome.ok:
            continue
        if args.json:
            export_result_json(outcome.result, _output_path(args.json, outcome, index, multiple))
        if args.csv:
            path = _output_path(args.csv, outcome, index, multiple)
            export_trades_csv(outcome.result, path)
            print(f"\nTrades exported to: {path}")


def main(argv=None) -> Optional[List[BacktestOutcome]]:
    """Main entry point."""
    args = parse_args(argv)

    # Setup logging
    level = logging.DEBUG if args.verbose else getattr(logging, get_log_level(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S',
    )

    try:
        config = build_config(args)

        # Validate
        issues = config.validate()
        if issues:
            for issue in issues:
                logging.error("Config error: %s", issue)
            sys.exit(1)

        engine = build_engine(args, config)
        outcomes = engine.run_all()
    except BacktestError as e:
        logging.error("Backtest aborted: %s", e)
        sys.exit(1)

    # Print summary
    for outcome in outcomes:
        if outcome.ok:
            print(outcome.result.summary())
        else:
            print(f"FAILED {outcome.job.label}: {outcome.error}")

    write_outputs(args, outcomes)

    if not all(o.ok for o in outcomes):
        sys.exit(1)
    return outcomes


if __name__ == '__main__':
    main()
