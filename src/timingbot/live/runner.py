from __future__ import annotations

import math
import time
from collections import deque
from typing import Any, Callable

from ..config.settings import Settings
from ..decision import as_profile
from ..engine import EngineResult, evaluate
from ..errors import InvalidInputError, TimingBotError
from ..gate import GateOutcome, NotificationGate
from ..sentiment import SentimentClassifier
from ..utils.log import (
    E_CYCLE_ABORTED,
    E_CYCLE_REENTRANT,
    E_CYCLE_START,
    E_ERROR,
    E_MONITOR_PAUSED,
    E_MONITOR_RESUMED,
    E_NOTIFIER_ERROR,
    R_CYCLE_FAILED,
    R_FETCH_FAILED,
    R_INVALID_INPUT,
    TelemetryContext,
    log_event,
    new_id,
    setup_logger,
)
from .feeds import FearGreedFeed, LogNotifier, NewsFeed, Notifier, PriceFeed


log = setup_logger()


class PriceHistory:
    """Bounded, append-only price buffer; the oldest point drops out first."""

    def __init__(self, max_len: int = 200) -> None:
        if max_len < 1:
            raise InvalidInputError("history length must be >= 1")
        self._buf: deque[float] = deque(maxlen=max_len)

    @property
    def max_len(self) -> int:
        return self._buf.maxlen or 0

    def append(self, price: float) -> None:
        value = float(price)
        if not math.isfinite(value) or value <= 0:
            raise InvalidInputError(f"price must be positive, got {price!r}")
        self._buf.append(value)

    def extend(self, prices) -> None:
        for p in prices:
            self.append(p)

    def values(self) -> list[float]:
        return list(self._buf)

    @property
    def last(self) -> float | None:
        return self._buf[-1] if self._buf else None

    def __len__(self) -> int:
        return len(self._buf)


class MonitorRunner:
    """Periodic analysis loop around :func:`~timingbot.engine.evaluate`.

    One cycle runs to completion before the next one may start; a cycle
    requested while another is in flight is refused. The notification gate
    owned by the runner is the only place the session state changes.
    """

    def __init__(
        self,
        settings: Settings,
        price_feed: PriceFeed,
        notifier: Notifier | None = None,
        *,
        fear_greed_feed: FearGreedFeed | None = None,
        news_feed: NewsFeed | None = None,
        classifier: SentimentClassifier | None = None,
        history: PriceHistory | None = None,
        run_id: str | None = None,
    ) -> None:
        self.settings = settings
        self.profile = as_profile(settings.risk_profile)
        self.price_feed = price_feed
        self.fear_greed_feed = fear_greed_feed
        self.news_feed = news_feed
        self.classifier = classifier
        self.history = history if history is not None else PriceHistory(settings.history.max_len)
        self.gate = NotificationGate(settings.notify)
        self.run_id = run_id or new_id("run")
        self.last_result: EngineResult | None = None
        self.cycles = 0
        self.notifier: Notifier = notifier if notifier is not None else LogNotifier(self._ctx())
        self._paused = False
        self._in_flight = False

    def _ctx(self) -> TelemetryContext:
        return TelemetryContext(
            run_id=self.run_id,
            symbol=self.settings.symbol,
            profile=self.profile.value,
            cycle=self.cycles or None,
        )

    # ------------------------------------------------------------------
    # Monitoring control
    # ------------------------------------------------------------------
    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        if not self._paused:
            self._paused = True
            log_event(E_MONITOR_PAUSED, ctx=self._ctx())

    def resume(self) -> None:
        if self._paused:
            self._paused = False
            log_event(E_MONITOR_RESUMED, ctx=self._ctx())

    def status(self) -> dict[str, Any]:
        """Read-only view of the monitor for status queries."""
        state = self.gate.state
        return {
            "run_id": self.run_id,
            "symbol": self.settings.symbol,
            "profile": self.profile.value,
            "paused": self._paused,
            "cycles": self.cycles,
            "history_length": len(self.history),
            "last_price": self.history.last,
            "state": {
                "buy_score": state.buy_score,
                "sell_score": state.sell_score,
                "action": state.action.value,
            },
            "last_result": self.last_result.to_dict() if self.last_result else None,
        }

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------
    def run_cycle(self) -> EngineResult | None:
        """Fetch inputs, evaluate and notify once.

        Returns ``None`` when the cycle was refused (already in flight) or
        aborted because an upstream fetch failed.
        """

        if self._in_flight:
            log_event(E_CYCLE_REENTRANT, ctx=self._ctx())
            return None
        self._in_flight = True
        try:
            return self._cycle()
        finally:
            self._in_flight = False

    def _cycle(self) -> EngineResult | None:
        self.cycles += 1
        ctx = self._ctx()
        log_event(E_CYCLE_START, ctx=ctx)

        # All inputs are resolved before anything is scored.
        try:
            quote = self.price_feed.fetch()
            fear_greed = self.fear_greed_feed.fetch() if self.fear_greed_feed else None
            news = self.news_feed.fetch() if self.news_feed else None
        except Exception as exc:  # collaborator failures of any kind abort the cycle
            log_event(E_CYCLE_ABORTED, ctx=ctx, reason=R_FETCH_FAILED, error=str(exc))
            return None
        if quote is None:
            log_event(E_CYCLE_ABORTED, ctx=ctx, reason=R_FETCH_FAILED, error="no price quote")
            return None

        # The price joins the history only once the cycle has been evaluated.
        prices = self.history.values() + [quote.price]
        notify_cfg = self.settings.notify
        result = evaluate(
            prices[-self.history.max_len :],
            fear_greed,
            news,
            risk_profile=self.profile,
            notify_thresholds=(notify_cfg.buy_threshold, notify_cfg.sell_threshold),
            only_strong_signals=notify_cfg.only_strong_signals,
            min_score_delta=notify_cfg.min_score_delta,
            state=self.gate.state,
            price_change_pct_24h=quote.change_24h,
            scoring=self.settings.scoring,
            classifier=self.classifier,
            min_history=self.settings.history.min_points,
            ctx=ctx,
        )
        self.history.append(quote.price)
        self.last_result = result

        if result.ok and result.decision is not None:
            self.gate.commit(
                GateOutcome(notify=result.notify, reason=result.gate_reason, state=result.state),
                confidence=result.decision.confidence,
                ctx=ctx,
            )
        if result.notify:
            self._deliver(result, ctx)
        return result

    def _deliver(self, result: EngineResult, ctx: TelemetryContext) -> None:
        try:
            self.notifier.send(result)
        except Exception as exc:  # state is already advanced; log and carry on
            log_event(E_NOTIFIER_ERROR, ctx=ctx, error=str(exc))

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------
    def run(
        self,
        *,
        max_steps: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Run cycles every ``settings.interval_minutes`` until interrupted.

        Paused ticks still count towards ``max_steps``. A failing cycle is
        logged and the loop carries on with the next tick.
        """

        interval = self.settings.interval_minutes * 60.0
        steps = 0
        try:
            while True:
                if not self._paused:
                    try:
                        self.run_cycle()
                    except TimingBotError as exc:
                        log_event(E_ERROR, ctx=self._ctx(), reason=R_INVALID_INPUT, error=str(exc))
                    except Exception as exc:  # plugged-in collaborators may raise anything
                        log_event(
                            E_ERROR,
                            ctx=self._ctx(),
                            reason=R_CYCLE_FAILED,
                            error=str(exc),
                            error_type=type(exc).__name__,
                        )
                steps += 1
                if max_steps is not None and steps >= max_steps:
                    break
                sleep(interval)
        except KeyboardInterrupt:
            log.info("keyboard_interrupt")


__all__ = ["PriceHistory", "MonitorRunner"]
