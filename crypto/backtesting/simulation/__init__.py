"""
Simulation components for crypto backtesting.
"""

from crypto.backtesting.simulation.cancellation import CancellationToken
from crypto.backtesting.simulation.simulator import SimulationOutcome, Simulator, run_backtest

__all__ = [
    "CancellationToken",
    "SimulationOutcome",
    "Simulator",
    "run_backtest",
]
