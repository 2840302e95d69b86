from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

import numpy as np
import pandas as pd

from ..errors import InvalidInputError


__all__ = [
    "BandPosition",
    "BollingerBands",
    "as_price_series",
    "rsi",
    "rsi_or_neutral",
    "bollinger",
    "sma",
    "drawdown",
    "rolling_low",
    "near_lower_band",
    "near_upper_band",
]


BandPosition = Literal["below_lower", "below_middle", "middle", "above_middle", "above_upper"]

NEUTRAL_RSI = 50.0


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float
    current: float
    position: BandPosition


def as_price_series(prices: Iterable[float] | pd.Series) -> pd.Series:
    """Coerce ``prices`` to a float64 series with a positional index.

    Raises :class:`InvalidInputError` for an empty series or any value that is
    not a positive finite number.
    """

    if isinstance(prices, pd.Series):
        s = prices.astype("float64").reset_index(drop=True)
    else:
        s = pd.Series(list(prices), dtype="float64")
    if s.empty:
        raise InvalidInputError("price series is empty")
    values = s.to_numpy()
    if not np.isfinite(values).all():
        raise InvalidInputError("price series contains NaN or infinite values")
    if (values <= 0).any():
        raise InvalidInputError("price series contains non-positive values")
    return s


def rsi(prices: Iterable[float] | pd.Series, period: int = 14) -> float | None:
    """Simple RSI over the last ``period`` price changes.

    Not Wilder-smoothed: gains and losses of the last ``period`` deltas are
    summed and averaged. Returns ``None`` when fewer than ``period + 1`` points
    are available. A window without any movement is neutral (50).
    """

    s = as_price_series(prices)
    if len(s) < period + 1:
        return None
    delta = s.diff().iloc[-period:]
    gains = float(delta.clip(lower=0).sum())
    losses = float((-delta).clip(lower=0).sum())
    if gains == 0.0 and losses == 0.0:
        return NEUTRAL_RSI
    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0.0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def rsi_or_neutral(prices: Iterable[float] | pd.Series, period: int = 14) -> float:
    """Like :func:`rsi` but reports insufficient history as neutral 50."""
    value = rsi(prices, period)
    return NEUTRAL_RSI if value is None else value


def bollinger(
    prices: Iterable[float] | pd.Series, period: int = 20, num_std: float = 2.0
) -> BollingerBands | None:
    s = as_price_series(prices)
    if len(s) < period:
        return None
    window = s.iloc[-period:]
    middle = float(window.mean())
    std = float(window.std(ddof=0))
    upper = middle + num_std * std
    lower = middle - num_std * std
    current = float(s.iloc[-1])

    position: BandPosition
    if current < lower:
        position = "below_lower"
    elif current > upper:
        position = "above_upper"
    elif current < middle:
        position = "below_middle"
    elif current > middle:
        position = "above_middle"
    else:
        position = "middle"
    return BollingerBands(upper=upper, middle=middle, lower=lower, current=current, position=position)


def sma(prices: Iterable[float] | pd.Series, period: int) -> float | None:
    s = as_price_series(prices)
    if period <= 0 or len(s) < period:
        return None
    return float(s.iloc[-period:].mean())


def drawdown(prices: Iterable[float] | pd.Series, current_price: float | None = None) -> float:
    """Percentage distance of ``current_price`` from the running maximum.

    The current price takes part in the maximum, so the result is always
    ``<= 0``. Defaults to the last value of ``prices``.
    """

    s = as_price_series(prices)
    current = float(s.iloc[-1]) if current_price is None else float(current_price)
    if not np.isfinite(current) or current <= 0:
        raise InvalidInputError("current price must be positive")
    peak = max(float(s.max()), current)
    return (current - peak) / peak * 100.0


def rolling_low(prices: Iterable[float] | pd.Series, period: int = 90) -> float | None:
    s = as_price_series(prices)
    if period <= 0:
        return None
    return float(s.iloc[-period:].min())


def near_lower_band(bands: BollingerBands | None, tolerance: float = 0.01) -> bool:
    """``True`` when price sits inside the bands but within ``tolerance`` of the lower one."""
    if bands is None or bands.position == "below_lower" or bands.upper <= bands.lower:
        return False
    return bands.current <= bands.lower * (1.0 + tolerance)


def near_upper_band(bands: BollingerBands | None, tolerance: float = 0.01) -> bool:
    if bands is None or bands.position == "above_upper" or bands.upper <= bands.lower:
        return False
    return bands.current >= bands.upper * (1.0 - tolerance)
