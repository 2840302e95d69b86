from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Literal, Mapping

import pandas as pd

from .config.settings import NotifySettings, ScoringSettings
from .core.indicators import as_price_series
from .core.snapshot import IndicatorSnapshot, build_snapshot
from .decision import Decision, RiskProfile, ThresholdSet, as_profile, decide
from .gate import EngineState, evaluate_gate
from .scoring import ScorePair, check_fear_greed, score
from .sentiment import SentimentClassifier, SentimentVerdict, interpret_news
from .utils.log import (
    E_CYCLE_SKIPPED,
    E_DECISION,
    R_INSUFFICIENT_HISTORY,
    TelemetryContext,
    log_event,
)


MIN_HISTORY = 50

Status = Literal["ok", "insufficient_history"]


@dataclass(frozen=True)
class EngineResult:
    status: Status
    state: EngineState
    notify: bool = False
    gate_reason: str = ""
    decision: Decision | None = None
    scores: ScorePair | None = None
    snapshot: IndicatorSnapshot | None = None
    sentiment: SentimentVerdict | None = None
    fear_greed: int | None = None
    history_length: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (enums as values, tuples as lists)."""
        out = _jsonable(self)
        out["ok"] = self.ok
        return out


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    return obj


def evaluate(
    prices: Iterable[float] | pd.Series,
    fear_greed: int | None = None,
    news: Iterable[Any] | None = None,
    *,
    risk_profile: RiskProfile | str = RiskProfile.MODERATE,
    thresholds: ThresholdSet | None = None,
    notify_thresholds: tuple[int, int] = (70, 70),
    only_strong_signals: bool = False,
    min_score_delta: int = 10,
    state: EngineState | None = None,
    price_change_pct_24h: float = 0.0,
    scoring: ScoringSettings | None = None,
    classifier: SentimentClassifier | None = None,
    min_history: int = MIN_HISTORY,
    ctx: TelemetryContext | None = None,
) -> EngineResult:
    """Run one analysis cycle over already fetched inputs.

    Parameters
    ----------
    prices:
        Chronological price history, oldest first; the last value is the
        current price.
    fear_greed:
        Optional Fear & Greed reading in ``[0, 100]``.
    news:
        Optional raw news items; ``None`` means the news signal is unavailable.
    risk_profile, thresholds:
        Profile selecting action thresholds and plan multipliers;
        ``thresholds`` overrides the profile's own thresholds.
    notify_thresholds, only_strong_signals, min_score_delta:
        Notification gate configuration (buy threshold, sell threshold).
    state:
        Gate state from the previous cycle; defaults to the initial state.

    Returns
    -------
    EngineResult
        With ``status="insufficient_history"`` when fewer than
        ``min_history`` points are available; no scores are computed and the
        state is returned unchanged. Otherwise the decision, the scores, the
        notify flag and the state to use on the next cycle.

    Raises
    ------
    InvalidInputError
        For an empty or non-positive price series, an out-of-range Fear &
        Greed value or an unknown risk profile.
    """

    profile = as_profile(risk_profile)
    series = as_price_series(prices)
    previous = state or EngineState.initial()
    fg = check_fear_greed(fear_greed)

    if len(series) < min_history:
        log_event(
            E_CYCLE_SKIPPED,
            ctx=ctx,
            reason=R_INSUFFICIENT_HISTORY,
            have=len(series),
            need=min_history,
        )
        return EngineResult(status="insufficient_history", state=previous, history_length=len(series))

    cfg = scoring or ScoringSettings()
    snapshot = build_snapshot(series, cfg)
    verdict = (
        interpret_news(news, price_change_pct_24h, classifier) if news is not None else None
    )
    scores = score(snapshot, verdict, fg, cfg)
    decision = decide(scores, snapshot.price, profile, thresholds)

    buy_threshold, sell_threshold = notify_thresholds
    notify_cfg = NotifySettings(
        buy_threshold=buy_threshold,
        sell_threshold=sell_threshold,
        only_strong_signals=only_strong_signals,
        min_score_delta=min_score_delta,
    )
    outcome = evaluate_gate(previous, decision.action, scores.buy_score, scores.sell_score, notify_cfg)

    log_event(
        E_DECISION,
        ctx=ctx,
        price=snapshot.price,
        rsi=snapshot.rsi,
        drawdown_pct=round(snapshot.drawdown_pct, 2),
        fear_greed=fg,
        sentiment=verdict.impact.value if verdict else None,
        buy_score=scores.buy_score,
        sell_score=scores.sell_score,
        action=decision.action.value,
        confidence=decision.confidence,
        notify=outcome.notify,
        gate_reason=outcome.reason,
    )
    return EngineResult(
        status="ok",
        state=outcome.state,
        notify=outcome.notify,
        gate_reason=outcome.reason,
        decision=decision,
        scores=scores,
        snapshot=snapshot,
        sentiment=verdict,
        fear_greed=fg,
        history_length=len(series),
    )


__all__ = ["EngineResult", "MIN_HISTORY", "evaluate"]
