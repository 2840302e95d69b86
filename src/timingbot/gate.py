"""Notification gate and the session state it owns.

The gate decides whether a freshly computed action is worth surfacing,
given what was seen on the previous cycle.  :func:`evaluate_gate` is the
pure transition ``(previous state, new values) -> (notify, new state)``;
:class:`NotificationGate` wraps it for the live runner, holding the current
:class:`EngineState` and emitting structured log events.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config.settings import NotifySettings
from .decision import Action
from .utils.log import E_NOTIFY_EMIT, E_NOTIFY_SUPPRESS, TelemetryContext, log_event


# Reason codes attached to every gate outcome.
R_UNCHANGED = "unchanged"
R_NOT_STRONG = "not_strong"
R_STRONG_SIGNAL = "strong_signal"
R_BUY_THRESHOLD = "buy_threshold"
R_SELL_THRESHOLD = "sell_threshold"
R_ACTION_CHANGED = "action_changed"
R_BELOW_THRESHOLDS = "below_thresholds"


@dataclass(frozen=True)
class EngineState:
    """Values of the previous cycle, as seen by the gate."""

    buy_score: int = 0
    sell_score: int = 0
    action: Action = Action.HOLD

    @classmethod
    def initial(cls) -> "EngineState":
        return cls()


@dataclass(frozen=True)
class GateOutcome:
    notify: bool
    reason: str
    state: EngineState


def evaluate_gate(
    previous: EngineState,
    action: Action,
    buy_score: int,
    sell_score: int,
    settings: NotifySettings | None = None,
) -> GateOutcome:
    """Decide whether to notify; rules are checked in order, first match wins.

    The returned state always carries the new values, whatever the outcome.
    """

    cfg = settings or NotifySettings()
    new_state = EngineState(buy_score=buy_score, sell_score=sell_score, action=action)

    def _out(notify: bool, reason: str) -> GateOutcome:
        return GateOutcome(notify=notify, reason=reason, state=new_state)

    unchanged = action == previous.action
    small_buy = abs(buy_score - previous.buy_score) < cfg.min_score_delta
    small_sell = abs(sell_score - previous.sell_score) < cfg.min_score_delta
    if unchanged and small_buy and small_sell:
        return _out(False, R_UNCHANGED)

    if cfg.only_strong_signals:
        if action.is_strong:
            return _out(True, R_STRONG_SIGNAL)
        return _out(False, R_NOT_STRONG)

    if buy_score >= cfg.buy_threshold:
        return _out(True, R_BUY_THRESHOLD)
    if sell_score >= cfg.sell_threshold:
        return _out(True, R_SELL_THRESHOLD)

    if action != previous.action and action is not Action.HOLD:
        return _out(True, R_ACTION_CHANGED)

    return _out(False, R_BELOW_THRESHOLDS)


class NotificationGate:
    """Hold the session :class:`EngineState` and advance it once per cycle.

    This is the only writer of the state; callers needing the last known
    decision read :attr:`state`.
    """

    def __init__(
        self,
        settings: NotifySettings | None = None,
        state: EngineState | None = None,
    ) -> None:
        self.settings = settings or NotifySettings()
        self._state = state or EngineState.initial()

    @property
    def state(self) -> EngineState:
        return self._state

    def check(
        self,
        action: Action,
        buy_score: int,
        sell_score: int,
        *,
        confidence: int | None = None,
        ctx: TelemetryContext | None = None,
    ) -> GateOutcome:
        previous = self._state
        outcome = evaluate_gate(previous, action, buy_score, sell_score, self.settings)
        self.commit(outcome, previous=previous, confidence=confidence, ctx=ctx)
        return outcome

    def commit(
        self,
        outcome: GateOutcome,
        *,
        previous: EngineState | None = None,
        confidence: int | None = None,
        ctx: TelemetryContext | None = None,
    ) -> None:
        """Adopt ``outcome.state`` and log the transition."""

        prev = previous or self._state
        new = outcome.state
        log_event(
            E_NOTIFY_EMIT if outcome.notify else E_NOTIFY_SUPPRESS,
            ctx=ctx,
            reason=outcome.reason,
            action=new.action.value,
            previous_action=prev.action.value,
            buy_score=new.buy_score,
            sell_score=new.sell_score,
            buy_delta=new.buy_score - prev.buy_score,
            sell_delta=new.sell_score - prev.sell_score,
            confidence=confidence,
        )
        self._state = new


__all__ = [
    "EngineState",
    "GateOutcome",
    "NotificationGate",
    "evaluate_gate",
]
