"""
Exchange integration module.

Provides the Binance REST client with:
- Historical OHLCV (klines) fetching
- Ticker price
- Signed account query
"""

from crypto.exchange.binance_client import BinanceClient, normalize_symbol

__all__ = ["BinanceClient", "normalize_symbol"]
