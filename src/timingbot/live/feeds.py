"""Collaborator interfaces for the monitor loop and offline implementations.

Network clients and chat transports live outside this package; anything that
satisfies these protocols can be plugged into
:class:`~timingbot.live.runner.MonitorRunner`.  Feeds signal a failed fetch by
raising (the cycle is aborted) and an unavailable optional signal by
returning ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Protocol

from ..errors import FeedError
from ..utils.log import E_ALERT, TelemetryContext, log_event

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..engine import EngineResult


@dataclass(frozen=True)
class PriceQuote:
    price: float
    change_24h: float = 0.0


class PriceFeed(Protocol):
    def fetch(self) -> PriceQuote: ...


class FearGreedFeed(Protocol):
    def fetch(self) -> int | None: ...


class NewsFeed(Protocol):
    def fetch(self) -> list[Any] | None: ...


class Notifier(Protocol):
    def send(self, result: "EngineResult") -> None: ...


class ReplayPriceFeed:
    """Serve prices from a recorded series, one per fetch.

    ``change_24h`` is derived from the point ``lookback`` steps earlier when
    available (96 fifteen-minute steps make a day).
    """

    def __init__(self, prices: Iterable[float], lookback: int = 96) -> None:
        self._prices = [float(p) for p in prices]
        self._lookback = lookback
        self._pos = 0

    def __len__(self) -> int:
        return len(self._prices)

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._prices)

    def fetch(self) -> PriceQuote:
        if self.exhausted:
            raise FeedError("replay series exhausted")
        price = self._prices[self._pos]
        change = 0.0
        if self._pos >= self._lookback:
            ref = self._prices[self._pos - self._lookback]
            if ref > 0:
                change = (price - ref) / ref * 100.0
        self._pos += 1
        return PriceQuote(price=price, change_24h=change)


class StaticFearGreedFeed:
    def __init__(self, value: int | None) -> None:
        self.value = value

    def fetch(self) -> int | None:
        return self.value


class StaticNewsFeed:
    def __init__(self, items: list[Any] | None) -> None:
        self.items = items

    def fetch(self) -> list[Any] | None:
        return None if self.items is None else list(self.items)


class LogNotifier:
    """Deliver alerts as structured ``alert`` log events."""

    def __init__(self, ctx: TelemetryContext | None = None, max_reasons: int = 3) -> None:
        self.ctx = ctx
        self.max_reasons = max_reasons

    def send(self, result: "EngineResult") -> None:
        decision, scores = result.decision, result.scores
        if decision is None or scores is None:
            return
        side = "sell" if decision.action.is_sell else "buy"
        log_event(
            E_ALERT,
            ctx=self.ctx,
            action=decision.action.value,
            confidence=decision.confidence,
            price=decision.price,
            buy_score=scores.buy_score,
            sell_score=scores.sell_score,
            reasons=scores.top_reasons(side, self.max_reasons),
            plan=(result.to_dict()["decision"] or {}).get("plan"),
        )


class CollectingNotifier:
    """Keep every delivered result in memory."""

    def __init__(self) -> None:
        self.sent: list["EngineResult"] = []

    def send(self, result: "EngineResult") -> None:
        self.sent.append(result)

    def __iter__(self) -> Iterator["EngineResult"]:
        return iter(self.sent)

    def __len__(self) -> int:
        return len(self.sent)


__all__ = [
    "PriceQuote",
    "PriceFeed",
    "FearGreedFeed",
    "NewsFeed",
    "Notifier",
    "ReplayPriceFeed",
    "StaticFearGreedFeed",
    "StaticNewsFeed",
    "LogNotifier",
    "CollectingNotifier",
]
