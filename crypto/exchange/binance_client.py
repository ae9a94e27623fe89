"""
Binance REST API client for crypto backtesting.

Provides:
- Historical OHLCV (klines) as a pandas DataFrame
- Latest ticker price
- Signed account query (HMAC-SHA256) for credential checks

Market data endpoints are public; only get_account_info() needs
BINANCE_API_KEY / BINANCE_API_SECRET.
"""

import hashlib
import hmac
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import pandas as pd
import requests

from config.settings import get_binance_credentials
from crypto.backtesting.errors import DataSourceError, InvalidConfigurationError
from crypto.config import BINANCE_KLINES_LIMIT, REQUEST_TIMEOUT_SECONDS, TIMEFRAME_SECONDS

logger = logging.getLogger(__name__)

# Kline row layout: [open_time, open, high, low, close, volume, close_time, ...]
KLINE_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


def normalize_symbol(symbol: str) -> str:
    """
    Convert a trading pair to Binance's concatenated form.

    'btc/usdt', 'BTC-USDT' and 'BTCUSDT' all become 'BTCUSDT'.
    """
    cleaned = symbol.replace("/", "").replace("-", "").replace("_", "").strip().upper()
    if not cleaned:
        raise InvalidConfigurationError(f"Invalid symbol: {symbol!r}")
    return cleaned


class BinanceClient:
    """
    Client for the Binance spot REST API.

    Usage:
        client = BinanceClient()
        df = client.get_historical_ohlcv('BTCUSDT', '1h', start_time=ms, end_time=ms)
        price = client.get_current_price('BTCUSDT')
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize Binance client.

        Args:
            api_key: API key (defaults to BINANCE_API_KEY env var)
            api_secret: API secret (defaults to BINANCE_API_SECRET env var)
            base_url: REST root (defaults to BINANCE_BASE_URL or api.binance.com)
            timeout: Per-request timeout in seconds
        """
        creds = get_binance_credentials()
        self.api_key = api_key or creds["api_key"]
        self.api_secret = api_secret or creds["api_secret"]
        self.base_url = (base_url or creds["base_url"]).rstrip("/")
        self.timeout = timeout

        if not self.api_key or not self.api_secret:
            logger.debug("Binance credentials not set; only public endpoints available")

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)

    # =========================================================================
    # MARKET DATA
    # =========================================================================

    def get_historical_ohlcv(
        self,
        symbol: str,
        interval: str,
        limit: int = BINANCE_KLINES_LIMIT,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> pd.DataFrame:
        """
        Fetch historical OHLCV data from Binance.

        A single request is made; Binance returns at most `limit` (<= 1000)
        candles, so longer ranges are truncated to their first `limit` bars.

        Args:
            symbol: Trading pair (e.g., 'BTCUSDT', 'BTC/USDT')
            interval: Kline interval ('1m', '1h', '4h', '1d', ...)
            limit: Maximum number of candles (capped at 1000)
            start_time: Start timestamp in milliseconds
            end_time: End timestamp in milliseconds

        Returns:
            DataFrame with open/high/low/close/volume columns and a UTC
            DatetimeIndex, oldest first

        Raises:
            DataSourceError: request failed, payload malformed, or no candles
        """
        pair = normalize_symbol(symbol)
        if interval not in TIMEFRAME_SECONDS:
            valid = ", ".join(TIMEFRAME_SECONDS)
            raise DataSourceError(
                f"Unsupported interval {interval!r}. Valid: {valid}",
                symbol=pair,
                timeframe=interval,
            )

        params: Dict[str, Any] = {
            "symbol": pair,
            "interval": interval,
            "limit": max(1, min(int(limit), BINANCE_KLINES_LIMIT)),
        }
        if start_time is not None:
            params["startTime"] = int(start_time)
        if end_time is not None:
            params["endTime"] = int(end_time)

        url = f"{self.base_url}/api/v3/klines"
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error("Error fetching klines for %s %s: %s", pair, interval, e)
            raise DataSourceError(
                f"Failed to fetch {pair} {interval} klines: {e}",
                symbol=pair,
                timeframe=interval,
            ) from e
        except ValueError as e:
            raise DataSourceError(
                f"Invalid klines payload for {pair} {interval}: {e}",
                symbol=pair,
                timeframe=interval,
            ) from e

        if not data:
            raise DataSourceError(
                f"No candles returned for {pair} {interval}",
                symbol=pair,
                timeframe=interval,
            )

        try:
            df = self._build_ohlcv_dataframe(data)
        except (TypeError, ValueError, IndexError) as e:
            raise DataSourceError(
                f"Malformed klines for {pair} {interval}: {e}",
                symbol=pair,
                timeframe=interval,
            ) from e

        logger.debug("Fetched %d %s candles for %s", len(df), interval, pair)
        return df

    def _build_ohlcv_dataframe(self, data: List[List[Any]]) -> pd.DataFrame:
        """Build OHLCV DataFrame from raw kline rows (numbers arrive as strings)."""
        rows = [row[: len(KLINE_COLUMNS)] for row in data]
        if any(len(row) < len(KLINE_COLUMNS) for row in rows):
            raise ValueError("kline row has fewer than 6 fields")

        df = pd.DataFrame(rows, columns=KLINE_COLUMNS)
        for col in ["open", "high", "low", "close", "volume"]:
            df[col] = pd.to_numeric(df[col])
        df["datetime"] = pd.to_datetime(df["timestamp"].astype("int64"), unit="ms", utc=True)
        df = df.set_index("datetime").sort_index()
        return df[["open", "high", "low", "close", "volume"]]

    def get_current_price(self, symbol: str) -> Optional[float]:
        """
        Get latest traded price for a symbol.

        Args:
            symbol: Trading pair (e.g., 'BTCUSDT')

        Returns:
            Current price or None if unavailable
        """
        pair = normalize_symbol(symbol)
        try:
            response = requests.get(
                f"{self.base_url}/api/v3/ticker/price",
                params={"symbol": pair},
                timeout=10,
            )
            response.raise_for_status()
            return float(response.json()["price"])
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.error("Error fetching price for %s: %s", pair, e)
            return None

    # =========================================================================
    # ACCOUNT
    # =========================================================================

    def _sign(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add timestamp and HMAC-SHA256 signature to query parameters.

        The signature covers the url-encoded query string in the order the
        parameters are sent.
        """
        if not self.api_secret:
            raise ValueError("BINANCE_API_SECRET is required for signed endpoints")

        signed = dict(params)
        signed.setdefault("timestamp", int(time.time() * 1000))
        query = urlencode(signed)
        signed["signature"] = hmac.new(
            self.api_secret.encode("utf-8"),
            query.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return signed

    def get_account_info(self) -> Dict[str, Any]:
        """
        Get account information (balances, permissions).

        Returns:
            Raw account payload from /api/v3/account

        Raises:
            ValueError: credentials missing
            requests.HTTPError: Binance rejected the request
        """
        if not self.has_credentials:
            raise ValueError("Binance API key and secret are required for account info")

        response = requests.get(
            f"{self.base_url}/api/v3/account",
            params=self._sign({}),
            headers={"X-MBX-APIKEY": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()
