"""Unit tests for indicator helpers."""

import math

import numpy as np
import pandas as pd
import pytest

from timingbot.core.indicators import (
    BollingerBands,
    bollinger,
    drawdown,
    near_lower_band,
    near_upper_band,
    rolling_low,
    rsi,
    rsi_or_neutral,
    sma,
)
from timingbot.errors import InvalidInputError


def test_rsi_undefined_on_short_history():
    assert rsi([100.0] * 14, 14) is None
    assert rsi_or_neutral([100.0] * 14, 14) == 50.0


def test_rsi_flat_window_is_neutral():
    assert rsi([100.0] * 30) == 50.0


def test_rsi_only_gains_is_100_and_only_losses_is_0():
    up = [100.0 + i for i in range(20)]
    down = [200.0 - i for i in range(20)]
    assert rsi(up) == 100.0
    assert rsi(down) == 0.0


def test_rsi_uses_last_period_deltas_only():
    # old history is a crash, the last 14 deltas alternate +2/-1
    prices = [500.0, 100.0]
    for i in range(14):
        prices.append(prices[-1] + (2.0 if i % 2 == 0 else -1.0))
    value = rsi(prices)
    # 7 gains of 2 and 7 losses of 1 -> rs = 2 -> 66.67
    assert value == pytest.approx(100 - 100 / 3)


def test_rsi_bounds():
    s = pd.Series([100, 101, 99, 103, 98, 104, 97, 105, 96, 106, 95, 107, 94, 108, 93, 109])
    value = rsi(s)
    assert 0.0 <= value <= 100.0


def test_bollinger_flat_series_position_middle():
    b = bollinger([50_000.0] * 60)
    assert isinstance(b, BollingerBands)
    assert b.upper == b.middle == b.lower == 50_000.0
    assert b.position == "middle"


def test_bollinger_positions():
    base = [100.0 + (i % 2) for i in range(19)]
    assert bollinger(base + [80.0]).position == "below_lower"
    assert bollinger(base + [130.0]).position == "above_upper"
    assert bollinger(base + [100.2]).position == "below_middle"
    assert bollinger(base + [100.9]).position == "above_middle"


def test_bollinger_requires_full_window():
    assert bollinger([100.0] * 19) is None


def test_bollinger_uses_population_std():
    window = [float(v) for v in range(1, 21)]
    b = bollinger(window)
    std = pd.Series(window).std(ddof=0)
    assert b.middle == pytest.approx(10.5)
    assert b.upper == pytest.approx(10.5 + 2 * std)
    assert b.lower == pytest.approx(10.5 - 2 * std)


def test_sma_window():
    assert sma([1.0, 2.0, 3.0, 4.0], 2) == pytest.approx(3.5)
    assert sma([1.0, 2.0], 3) is None


def test_drawdown_is_never_positive():
    assert drawdown([100.0, 120.0, 60.0]) == pytest.approx(-50.0)
    # a new high above the history counts as the peak
    assert drawdown([100.0, 90.0], current_price=150.0) == 0.0


def test_rolling_low_window():
    prices = [10.0] + [20.0] * 100
    assert rolling_low(prices, 90) == 20.0
    assert rolling_low(prices[:50], 90) == 10.0


def test_near_band_helpers():
    inside = BollingerBands(upper=110.0, middle=100.0, lower=90.0, current=90.5, position="below_middle")
    assert near_lower_band(inside)
    assert not near_upper_band(inside)
    top = BollingerBands(upper=110.0, middle=100.0, lower=90.0, current=109.5, position="above_middle")
    assert near_upper_band(top)
    flat = BollingerBands(upper=100.0, middle=100.0, lower=100.0, current=100.0, position="middle")
    assert not near_lower_band(flat)
    assert not near_upper_band(flat)
    assert not near_lower_band(None)


@pytest.mark.parametrize(
    "prices",
    [[], [100.0, -1.0], [100.0, 0.0], [100.0, math.nan], [100.0, math.inf]],
)
def test_invalid_prices_rejected(prices):
    with pytest.raises(InvalidInputError):
        rsi(prices)


@pytest.mark.parametrize("seed", [1, 7, 42, 123, 2024])
def test_bollinger_bands_ordered_on_random_walks(seed):
    rng = np.random.default_rng(seed)
    prices = 100.0 * np.exp(np.cumsum(rng.normal(0.0, 0.02, size=120)))
    for end in range(20, len(prices) + 1, 10):
        b = bollinger(prices[:end])
        assert b.lower <= b.middle <= b.upper
        assert b.current == pytest.approx(prices[end - 1])
        assert drawdown(prices[:end]) <= 0.0
        value = rsi(prices[:end])
        assert 0.0 <= value <= 100.0
