"""Per-cycle bundle of indicator values consumed by the scoring model."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

import pandas as pd

from ..config.settings import ScoringSettings
from .indicators import (
    BollingerBands,
    as_price_series,
    bollinger,
    drawdown,
    rolling_low,
    rsi,
    rsi_or_neutral,
    sma,
)


@dataclass(frozen=True)
class IndicatorSnapshot:
    price: float
    length: int
    rsi: float | None
    bollinger: BollingerBands | None
    drawdown_pct: float
    rolling_low: float | None
    sma_values: Mapping[int, float | None] = field(default_factory=lambda: MappingProxyType({}))
    medium_sma_period: int = 50
    long_sma_period: int = 200

    def sma(self, period: int) -> float | None:
        return self.sma_values.get(period)

    @property
    def medium_sma(self) -> float | None:
        return self.sma(self.medium_sma_period)

    @property
    def long_sma(self) -> float | None:
        return self.sma(self.long_sma_period)


def build_snapshot(
    prices: Iterable[float] | pd.Series, settings: ScoringSettings | None = None
) -> IndicatorSnapshot:
    """Compute every indicator the scoring model reads.

    The last point of ``prices`` is the current price. Moving averages are
    taken over ``min(period, len(prices))`` points so a partially filled
    history still yields a trend reference.
    """

    cfg = settings or ScoringSettings()
    s = as_price_series(prices)
    n = len(s)
    price = float(s.iloc[-1])

    rsi_fn = rsi_or_neutral if cfg.rsi_insufficient == "neutral" else rsi
    sma_values = {
        cfg.medium_sma_period: sma(s, min(cfg.medium_sma_period, n)),
        cfg.long_sma_period: sma(s, min(cfg.long_sma_period, n)),
    }
    return IndicatorSnapshot(
        price=price,
        length=n,
        rsi=rsi_fn(s, cfg.rsi_period),
        bollinger=bollinger(s, cfg.bollinger_period),
        drawdown_pct=drawdown(s, price),
        rolling_low=rolling_low(s, cfg.rolling_low_period),
        sma_values=MappingProxyType(sma_values),
        medium_sma_period=cfg.medium_sma_period,
        long_sma_period=cfg.long_sma_period,
    )


__all__ = ["IndicatorSnapshot", "build_snapshot"]
