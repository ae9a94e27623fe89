"""
Cooperative cancellation for long backtests.

The simulator checks the token once per candle; any thread may cancel it.
"""

import threading


class CancellationToken:
    """
    Thread-safe cancel flag.

    Usage:
        token = CancellationToken()
        future = pool.submit(sim.run, candles, strategy, token)
        token.cancel()  # run raises BacktestCancelledError at the next candle
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
