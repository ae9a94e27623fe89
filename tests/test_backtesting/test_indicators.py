"""
Tests for crypto/backtesting/indicators.py
"""

import math

import numpy as np
import pytest

from crypto.backtesting.errors import InsufficientHistoryError
from crypto.backtesting.indicators import (
    bollinger_bands,
    ema,
    ema_series,
    macd,
    rsi,
    sma,
)


class TestSMA:
    def test_uses_last_period_prices(self):
        assert sma([1, 2, 3, 4, 5], 3) == pytest.approx(4.0)

    def test_insufficient(self):
        with pytest.raises(InsufficientHistoryError) as exc_info:
            sma([1, 2], 3)
        assert exc_info.value.required == 3
        assert exc_info.value.available == 2


class TestEMA:
    def test_seeded_with_first_price(self):
        assert ema_series([10.0, 20.0, 30.0], 3)[0] == 10.0

    def test_recurrence(self):
        """k = 2 / (period + 1) = 0.5 for period 3."""
        series = ema_series([10.0, 20.0, 30.0], 3)
        assert series[1] == pytest.approx(15.0)
        assert series[2] == pytest.approx(22.5)
        assert ema([10.0, 20.0, 30.0], 3) == pytest.approx(22.5)

    def test_matches_manual_loop(self):
        prices = [float(p) for p in np.linspace(50, 80, 40)]
        k = 2 / (12 + 1)
        value = prices[0]
        for price in prices[1:]:
            value = price * k + value * (1 - k)
        assert ema(prices, 12) == pytest.approx(value)

    def test_empty_raises(self):
        with pytest.raises(InsufficientHistoryError):
            ema([], 5)


class TestRSI:
    def test_all_gains_saturates(self):
        assert rsi(list(range(1, 20)), 14) == 100.0

    def test_flat_prices_saturate(self):
        """No losses means avg_loss == 0, guarded to 100."""
        assert rsi([100.0] * 15, 14) == 100.0

    def test_balanced_moves(self):
        assert rsi([1.0, 2.0, 1.0], 2) == pytest.approx(50.0)

    def test_all_losses(self):
        assert rsi(list(range(20, 0, -1)), 14) == pytest.approx(0.0)

    def test_only_trailing_window_counts(self):
        """Early losses outside the window are ignored."""
        prices = [100.0, 50.0] + [float(p) for p in range(50, 66)]
        assert rsi(prices, 14) == 100.0

    def test_needs_period_plus_one(self):
        with pytest.raises(InsufficientHistoryError):
            rsi([1.0] * 14, 14)


class TestMACD:
    def test_flat_prices_are_zero(self):
        result = macd([100.0] * 40)
        assert result.macd == pytest.approx(0.0)
        assert result.signal == pytest.approx(0.0)
        assert result.histogram == pytest.approx(0.0)

    def test_uptrend_positive_line(self):
        result = macd([float(p) for p in range(1, 60)])
        assert result.macd > 0

    def test_histogram_is_line_minus_signal(self):
        prices = [100 + math.sin(i / 3) * 5 for i in range(60)]
        result = macd(prices)
        assert result.histogram == pytest.approx(result.macd - result.signal)

    def test_needs_slow_period(self):
        with pytest.raises(InsufficientHistoryError):
            macd([1.0] * 25)


class TestBollingerBands:
    def test_flat_prices_zero_width(self):
        bands = bollinger_bands([50.0] * 20)
        assert bands.width == 0
        assert bands.middle == 50.0

    def test_population_std(self):
        bands = bollinger_bands([1.0, 2.0, 3.0, 4.0], period=4, num_std=2.0)
        std = math.sqrt(1.25)
        assert bands.middle == pytest.approx(2.5)
        assert bands.upper == pytest.approx(2.5 + 2 * std)
        assert bands.lower == pytest.approx(2.5 - 2 * std)

    def test_uses_last_period(self):
        bands = bollinger_bands([1000.0] + [10.0] * 20, period=20)
        assert bands.middle == pytest.approx(10.0)

    def test_insufficient(self):
        with pytest.raises(InsufficientHistoryError):
            bollinger_bands([1.0] * 19, period=20)
