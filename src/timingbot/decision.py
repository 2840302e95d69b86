from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from .errors import InvalidInputError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .scoring import ScorePair


class Action(str, Enum):
    HOLD = "HOLD"
    BUY_STRONG = "BUY_STRONG"
    BUY_WEAK = "BUY_WEAK"
    SELL_STRONG = "SELL_STRONG"
    SELL_WEAK = "SELL_WEAK"
    CONFLICT = "CONFLICT"

    @property
    def is_buy(self) -> bool:
        return self in (Action.BUY_STRONG, Action.BUY_WEAK)

    @property
    def is_sell(self) -> bool:
        return self in (Action.SELL_STRONG, Action.SELL_WEAK)

    @property
    def is_strong(self) -> bool:
        return self in (Action.BUY_STRONG, Action.SELL_STRONG)


class RiskProfile(str, Enum):
    CONSERVATIVE = "Conservative"
    MODERATE = "Moderate"
    AGGRESSIVE = "Aggressive"


@dataclass(frozen=True)
class ThresholdSet:
    buy_strong: int
    buy_weak: int
    sell_strong: int
    sell_weak: int


@dataclass(frozen=True)
class MultiplierSet:
    position: float
    stop_loss: float
    tp1: float
    tp2: float


PROFILE_THRESHOLDS: Mapping[RiskProfile, ThresholdSet] = MappingProxyType(
    {
        RiskProfile.CONSERVATIVE: ThresholdSet(buy_strong=75, buy_weak=60, sell_strong=75, sell_weak=60),
        RiskProfile.MODERATE: ThresholdSet(buy_strong=70, buy_weak=50, sell_strong=70, sell_weak=50),
        RiskProfile.AGGRESSIVE: ThresholdSet(buy_strong=65, buy_weak=45, sell_strong=65, sell_weak=45),
    }
)

PROFILE_MULTIPLIERS: Mapping[RiskProfile, MultiplierSet] = MappingProxyType(
    {
        RiskProfile.CONSERVATIVE: MultiplierSet(position=0.2, stop_loss=0.03, tp1=1.05, tp2=1.12),
        RiskProfile.MODERATE: MultiplierSet(position=0.3, stop_loss=0.04, tp1=1.08, tp2=1.18),
        RiskProfile.AGGRESSIVE: MultiplierSet(position=0.5, stop_loss=0.05, tp1=1.12, tp2=1.25),
    }
)

# Entry band around the current price.
ENTRY_LOW = 0.985
ENTRY_HIGH = 1.015

# Score at which the opposite side blocks a directional action.
OPPOSING_SCORE_LIMIT = 50

CONFLICT_CONFIDENCE = 45
HOLD_CONFIDENCE = 50


@dataclass(frozen=True)
class TradingPlan:
    entry_low: float
    entry_high: float
    stop_loss: float
    take_profit_1: float
    take_profit_2: float
    position_size_pct: float
    # Percent distances relative to the reference price.
    stop_loss_pct: float
    take_profit_1_pct: float
    take_profit_2_pct: float


@dataclass(frozen=True)
class Decision:
    action: Action
    confidence: int
    price: float
    profile: RiskProfile
    plan: TradingPlan | None = None


def as_profile(profile: RiskProfile | str) -> RiskProfile:
    """Return the :class:`RiskProfile` for ``profile`` or raise.

    Accepts enum members, their values (``"Moderate"``) and member names
    (``"MODERATE"``).
    """

    if isinstance(profile, RiskProfile):
        return profile
    if isinstance(profile, str):
        for member in RiskProfile:
            if profile == member.value or profile.upper() == member.name:
                return member
    raise InvalidInputError(f"unknown risk profile: {profile!r}")


def get_profile(profile: RiskProfile | str) -> tuple[ThresholdSet, MultiplierSet]:
    key = as_profile(profile)
    return PROFILE_THRESHOLDS[key], PROFILE_MULTIPLIERS[key]


def resolve_action(buy_score: int, sell_score: int, thresholds: ThresholdSet) -> tuple[Action, int]:
    """Map a score pair onto an action and confidence percentage.

    Rules are checked in a fixed order and the first match wins; the function
    keeps no memory between calls.
    """

    t = thresholds
    if buy_score >= t.buy_strong and sell_score < OPPOSING_SCORE_LIMIT:
        return Action.BUY_STRONG, min(95, 60 + (buy_score - t.buy_strong))
    if buy_score >= t.buy_weak and sell_score < OPPOSING_SCORE_LIMIT:
        return Action.BUY_WEAK, min(75, 50 + (buy_score - t.buy_weak))
    if sell_score >= t.sell_strong and buy_score < OPPOSING_SCORE_LIMIT:
        return Action.SELL_STRONG, min(90, 55 + (sell_score - t.sell_strong))
    if sell_score >= t.sell_weak and buy_score < OPPOSING_SCORE_LIMIT:
        return Action.SELL_WEAK, min(70, 50 + (sell_score - t.sell_weak))
    if buy_score >= OPPOSING_SCORE_LIMIT and sell_score >= OPPOSING_SCORE_LIMIT:
        return Action.CONFLICT, CONFLICT_CONFIDENCE
    return Action.HOLD, HOLD_CONFIDENCE


def build_plan(price: float, multipliers: MultiplierSet) -> TradingPlan:
    if price <= 0:
        raise InvalidInputError("price must be positive")
    m = multipliers
    return TradingPlan(
        entry_low=price * ENTRY_LOW,
        entry_high=price * ENTRY_HIGH,
        stop_loss=price * (1 - m.stop_loss),
        take_profit_1=price * m.tp1,
        take_profit_2=price * m.tp2,
        position_size_pct=m.position * 100,
        stop_loss_pct=-m.stop_loss * 100,
        take_profit_1_pct=(m.tp1 - 1) * 100,
        take_profit_2_pct=(m.tp2 - 1) * 100,
    )


def decide(
    scores: "ScorePair",
    price: float,
    profile: RiskProfile | str,
    thresholds: ThresholdSet | None = None,
) -> Decision:
    """Resolve ``scores`` into a :class:`Decision` for ``profile``.

    ``thresholds`` overrides the profile's own threshold set; position sizing
    always comes from the profile. HOLD and CONFLICT carry no trading plan.
    """

    key = as_profile(profile)
    default_thresholds, multipliers = get_profile(key)
    action, confidence = resolve_action(
        scores.buy_score, scores.sell_score, thresholds or default_thresholds
    )
    plan = build_plan(price, multipliers) if (action.is_buy or action.is_sell) else None
    return Decision(action=action, confidence=int(confidence), price=float(price), profile=key, plan=plan)


__all__ = [
    "Action",
    "RiskProfile",
    "ThresholdSet",
    "MultiplierSet",
    "PROFILE_THRESHOLDS",
    "PROFILE_MULTIPLIERS",
    "TradingPlan",
    "Decision",
    "as_profile",
    "get_profile",
    "resolve_action",
    "build_plan",
    "decide",
]
