import pytest

from timingbot.decision import (
    PROFILE_MULTIPLIERS,
    PROFILE_THRESHOLDS,
    Action,
    RiskProfile,
    ThresholdSet,
    as_profile,
    build_plan,
    decide,
    get_profile,
    resolve_action,
)
from timingbot.errors import InvalidInputError
from timingbot.scoring import ScorePair


MODERATE = PROFILE_THRESHOLDS[RiskProfile.MODERATE]


def test_profile_tables():
    assert PROFILE_THRESHOLDS[RiskProfile.CONSERVATIVE] == ThresholdSet(75, 60, 75, 60)
    assert PROFILE_THRESHOLDS[RiskProfile.AGGRESSIVE] == ThresholdSet(65, 45, 65, 45)
    assert PROFILE_MULTIPLIERS[RiskProfile.MODERATE].position == 0.3
    with pytest.raises(TypeError):
        PROFILE_THRESHOLDS[RiskProfile.MODERATE] = ThresholdSet(1, 1, 1, 1)  # type: ignore[index]


@pytest.mark.parametrize("value", ["Moderate", "MODERATE", "moderate", RiskProfile.MODERATE])
def test_as_profile_accepts_values_and_names(value):
    assert as_profile(value) is RiskProfile.MODERATE


def test_unknown_profile_rejected():
    with pytest.raises(InvalidInputError):
        as_profile("YOLO")
    with pytest.raises(InvalidInputError):
        get_profile("YOLO")


@pytest.mark.parametrize(
    "buy,sell,action,confidence",
    [
        (70, 0, Action.BUY_STRONG, 60),
        (100, 49, Action.BUY_STRONG, 90),
        (69, 0, Action.BUY_WEAK, 69),
        (50, 10, Action.BUY_WEAK, 50),
        (0, 70, Action.SELL_STRONG, 55),
        (10, 100, Action.SELL_STRONG, 85),
        (0, 69, Action.SELL_WEAK, 69),
        (0, 50, Action.SELL_WEAK, 50),
        (49, 49, Action.HOLD, 50),
        (80, 80, Action.CONFLICT, 45),
    ],
)
def test_resolve_action_moderate(buy, sell, action, confidence):
    assert resolve_action(buy, sell, MODERATE) == (action, confidence)


def test_confidence_caps():
    low = ThresholdSet(buy_strong=0, buy_weak=0, sell_strong=0, sell_weak=0)
    assert resolve_action(100, 0, low) == (Action.BUY_STRONG, 95)
    assert resolve_action(0, 100, low) == (Action.SELL_STRONG, 90)
    weak_buy = ThresholdSet(buy_strong=101, buy_weak=0, sell_strong=101, sell_weak=101)
    assert resolve_action(40, 0, weak_buy) == (Action.BUY_WEAK, 75)
    weak_sell = ThresholdSet(buy_strong=101, buy_weak=101, sell_strong=101, sell_weak=0)
    assert resolve_action(0, 40, weak_sell) == (Action.SELL_WEAK, 70)


@pytest.mark.parametrize("profile", list(RiskProfile))
def test_conflict_regardless_of_profile(profile):
    thresholds, _ = get_profile(profile)
    assert resolve_action(60, 60, thresholds) == (Action.CONFLICT, 45)


def test_resolve_action_is_stateless():
    first = resolve_action(55, 10, MODERATE)
    resolve_action(90, 0, MODERATE)
    assert resolve_action(55, 10, MODERATE) == first


def test_build_plan_moderate():
    plan = build_plan(100.0, PROFILE_MULTIPLIERS[RiskProfile.MODERATE])
    assert plan.entry_low == pytest.approx(98.5)
    assert plan.entry_high == pytest.approx(101.5)
    assert plan.stop_loss == pytest.approx(96.0)
    assert plan.take_profit_1 == pytest.approx(108.0)
    assert plan.take_profit_2 == pytest.approx(118.0)
    assert plan.position_size_pct == pytest.approx(30.0)
    assert plan.stop_loss_pct == pytest.approx(-4.0)
    assert plan.take_profit_2_pct == pytest.approx(18.0)


def test_decide_attaches_plan_only_to_directional_actions():
    buy = decide(ScorePair(80, 0), 100.0, "Aggressive")
    assert buy.action is Action.BUY_STRONG
    assert buy.profile is RiskProfile.AGGRESSIVE
    assert buy.plan is not None and buy.plan.position_size_pct == pytest.approx(50.0)

    hold = decide(ScorePair(10, 10), 100.0, RiskProfile.MODERATE)
    assert hold.action is Action.HOLD and hold.plan is None

    conflict = decide(ScorePair(60, 60), 100.0, RiskProfile.MODERATE)
    assert conflict.action is Action.CONFLICT and conflict.plan is None


def test_decide_threshold_override():
    custom = ThresholdSet(buy_strong=90, buy_weak=80, sell_strong=90, sell_weak=80)
    decision = decide(ScorePair(75, 0), 100.0, RiskProfile.MODERATE, thresholds=custom)
    assert decision.action is Action.HOLD
