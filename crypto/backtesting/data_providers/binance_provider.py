"""
Binance candle source.

Loads real klines through BinanceClient. One request per load: ranges longer
than 1000 candles come back truncated and are flagged (and logged) as such.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from crypto.backtesting.data_providers.base import (
    timeframe_seconds,
    to_millis,
    to_utc_datetime,
)
from crypto.backtesting.errors import DataSourceError, InvalidConfigurationError
from crypto.backtesting.models import CandleSeries, DataOrigin, candles_from_frame
from crypto.config import BINANCE_KLINES_LIMIT
from crypto.exchange.binance_client import BinanceClient, normalize_symbol

logger = logging.getLogger(__name__)


class BinanceCandleSource:
    """
    CandleSource backed by Binance public klines.

    Usage:
        source = BinanceCandleSource()
        series = source.load('BTCUSDT', '1h', start, end)
    """

    def __init__(self, client: Optional[BinanceClient] = None, limit: int = BINANCE_KLINES_LIMIT):
        self._client = client
        self.limit = limit

    @property
    def client(self) -> BinanceClient:
        # Built lazily so offline callers never touch credentials
        if self._client is None:
            self._client = BinanceClient()
        return self._client

    def load(
        self,
        symbol: str,
        timeframe: str,
        start: datetime,
        end: datetime,
    ) -> CandleSeries:
        start = to_utc_datetime(start)
        end = to_utc_datetime(end)
        if end <= start:
            raise InvalidConfigurationError(f"end ({end}) must be after start ({start})")
        step = timeframe_seconds(timeframe)
        pair = normalize_symbol(symbol)

        df = self.client.get_historical_ohlcv(
            pair,
            timeframe,
            limit=self.limit,
            start_time=to_millis(start),
            end_time=to_millis(end),
        )
        candles = candles_from_frame(df)
        if not candles:
            raise DataSourceError(
                f"No candles returned for {pair} {timeframe}", symbol=pair, timeframe=timeframe
            )

        # Full page that stops short of the requested end means more data exists
        next_open = to_utc_datetime(candles[-1].timestamp) + timedelta(seconds=step)
        truncated = len(candles) >= self.limit and next_open < end
        if truncated:
            logger.warning(
                "%s %s range truncated to %d candles (%s -> %s); requested end %s",
                pair, timeframe, len(candles), candles[0].timestamp, candles[-1].timestamp, end,
            )

        logger.info("Loaded %d %s candles for %s from Binance", len(candles), timeframe, pair)
        return CandleSeries(
            symbol=pair,
            timeframe=timeframe,
            candles=tuple(candles),
            origin=DataOrigin.BINANCE,
            truncated=truncated,
        )
