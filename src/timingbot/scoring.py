from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Literal

from .config.settings import ScoringSettings
from .core.indicators import near_lower_band, near_upper_band
from .core.snapshot import IndicatorSnapshot
from .errors import InvalidInputError
from .sentiment import Impact, SentimentVerdict


SCORE_MIN = 0
SCORE_MAX = 100

SMA_SUPPORT_PCT = 0.02
ROLLING_LOW_PCT = 0.03
DISTRIBUTION_DRAWDOWN_PCT = -10.0


@dataclass(frozen=True)
class ScorePair:
    buy_score: int
    sell_score: int
    buy_reasons: tuple[str, ...] = ()
    sell_reasons: tuple[str, ...] = ()

    def top_reasons(self, side: Literal["buy", "sell"], n: int = 3) -> list[str]:
        reasons = self.buy_reasons if side == "buy" else self.sell_reasons
        return list(reasons[:n])


def _clamp(v: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, v))


def check_fear_greed(value: object) -> int | None:
    """Validate an optional Fear & Greed reading (integer in ``[0, 100]``)."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidInputError(f"fear & greed index must be an integer, got {value!r}")
    v = int(value)
    if not (0 <= v <= 100):
        raise InvalidInputError(f"fear & greed index out of range: {v}")
    return v


class _Tally:
    """Running total plus the reasons of every contributing rule."""

    def __init__(self) -> None:
        self.total = 0
        self.reasons: list[str] = []

    def add(self, points: int, reason: str) -> None:
        self.total += points
        self.reasons.append(reason)


def _score_buy(
    snap: IndicatorSnapshot,
    sentiment: SentimentVerdict | None,
    fear_greed: int | None,
    cfg: ScoringSettings,
) -> _Tally:
    t = _Tally()
    price = snap.price

    if snap.rsi is not None:
        if snap.rsi < 25:
            t.add(30, f"RSI deeply oversold ({snap.rsi:.1f})")
        elif snap.rsi < 30:
            t.add(20, f"RSI oversold ({snap.rsi:.1f})")
        elif snap.rsi < 40:
            t.add(5, f"RSI weak ({snap.rsi:.1f})")

    bands = snap.bollinger
    if bands is not None and bands.position == "below_lower":
        t.add(20, "Price below lower Bollinger band")
    elif cfg.near_band_bonus and near_lower_band(bands):
        t.add(10, "Price near lower Bollinger band")

    if fear_greed is not None:
        if fear_greed < 20:
            t.add(25, f"Extreme fear ({fear_greed})")
        elif fear_greed < 30:
            t.add(15, f"Market fear ({fear_greed})")
        elif fear_greed < 50:
            t.add(5, f"Cautious sentiment ({fear_greed})")

    long_sma = snap.long_sma
    if long_sma and abs(price - long_sma) / long_sma < SMA_SUPPORT_PCT:
        t.add(10, f"Support at long-term average ({long_sma:,.0f})")

    low = snap.rolling_low
    if cfg.rolling_low_bonus and low and (price - low) / low <= ROLLING_LOW_PCT:
        t.add(cfg.rolling_low_bonus, f"Near {cfg.rolling_low_period}-period low ({low:,.0f})")

    if snap.drawdown_pct <= -60:
        t.add(10, f"Severe drawdown ({snap.drawdown_pct:.1f}%)")
    elif snap.drawdown_pct <= -40:
        t.add(5, f"Deep drawdown ({snap.drawdown_pct:.1f}%)")

    if sentiment is not None:
        if sentiment.impact is Impact.POSITIVE:
            t.add(10, "Positive news flow")
        elif sentiment.impact is Impact.CRITICAL_NEGATIVE:
            t.add(-20, "Critical negative news")
        elif sentiment.impact is Impact.DIVERGENCE_POSITIVE:
            t.add(15, "Positive news while price falls (divergence)")
    return t


def _score_sell(
    snap: IndicatorSnapshot,
    sentiment: SentimentVerdict | None,
    fear_greed: int | None,
    cfg: ScoringSettings,
) -> _Tally:
    t = _Tally()
    price = snap.price

    if snap.rsi is not None:
        if snap.rsi > 80:
            t.add(30, f"RSI deeply overbought ({snap.rsi:.1f})")
        elif snap.rsi > 75:
            t.add(20, f"RSI overbought ({snap.rsi:.1f})")
        elif snap.rsi > 70:
            t.add(10, f"RSI elevated ({snap.rsi:.1f})")

    bands = snap.bollinger
    if bands is not None and bands.position == "above_upper":
        t.add(20, "Price above upper Bollinger band")
    elif cfg.near_band_bonus and near_upper_band(bands):
        t.add(10, "Price near upper Bollinger band")

    if fear_greed is not None:
        if fear_greed > 85:
            t.add(25, f"Extreme greed ({fear_greed})")
        elif fear_greed > 75:
            t.add(15, f"Market greed ({fear_greed})")
        elif fear_greed > 60:
            t.add(5, f"Optimistic sentiment ({fear_greed})")

    medium, long_ = snap.medium_sma, snap.long_sma
    if medium and long_ and price > medium > long_:
        if snap.drawdown_pct >= DISTRIBUTION_DRAWDOWN_PCT:
            t.add(15, "Near highs in an uptrend (distribution zone)")
        else:
            t.add(10, "Price above medium and long-term averages")

    if sentiment is not None:
        if sentiment.impact in (Impact.NEGATIVE, Impact.CRITICAL_NEGATIVE):
            t.add(15, "Negative news flow")
        elif sentiment.impact is Impact.DIVERGENCE_NEGATIVE:
            t.add(10, "Negative news while price rallies (divergence)")
    return t


def score(
    snapshot: IndicatorSnapshot,
    sentiment: SentimentVerdict | None = None,
    fear_greed: int | None = None,
    settings: ScoringSettings | None = None,
) -> ScorePair:
    """Turn indicator values and optional signals into buy/sell conviction.

    Missing optional inputs (``sentiment``, ``fear_greed``, undefined
    indicators) skip their rules. Both sums are clamped to ``[0, 100]``
    independently.
    """

    cfg = settings or ScoringSettings()
    fg = check_fear_greed(fear_greed)
    buy = _score_buy(snapshot, sentiment, fg, cfg)
    sell = _score_sell(snapshot, sentiment, fg, cfg)
    return ScorePair(
        buy_score=_clamp(buy.total),
        sell_score=_clamp(sell.total),
        buy_reasons=tuple(buy.reasons),
        sell_reasons=tuple(sell.reasons),
    )


__all__ = ["ScorePair", "check_fear_greed", "score"]
