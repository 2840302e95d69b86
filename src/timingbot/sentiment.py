"""News headline sentiment.

The interpreter turns a batch of already fetched news items into a
:class:`SentimentVerdict`.  Classification sits behind the
:class:`SentimentClassifier` protocol; the bundled
:class:`KeywordSentimentClassifier` is a fixed-vocabulary substring matcher,
so a stronger model can replace it without touching the scoring contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Literal, Mapping, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .utils.log import E_NEWS_ITEM_INVALID, log_event


class Impact(str, Enum):
    NEUTRAL = "NEUTRAL"
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    CRITICAL_NEGATIVE = "CRITICAL_NEGATIVE"
    DIVERGENCE_POSITIVE = "DIVERGENCE_POSITIVE"
    DIVERGENCE_NEGATIVE = "DIVERGENCE_NEGATIVE"


EventType = Literal["critical", "negative", "positive"]


class NewsItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    source: str = ""

    @field_validator("title")
    @classmethod
    def _check_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("news item title is empty")
        return v

    @field_validator("source", mode="before")
    @classmethod
    def _source_name(cls, v: Any) -> str:
        # Aggregator payloads nest the source as {"title": ..., "domain": ...}.
        if v is None:
            return ""
        if isinstance(v, Mapping):
            return str(v.get("title") or v.get("name") or v.get("domain") or "")
        return str(v)


@dataclass(frozen=True)
class KeyEvent:
    title: str
    source: str
    type: EventType


@dataclass(frozen=True)
class SentimentVerdict:
    impact: Impact = Impact.NEUTRAL
    sentiment_score: int = 0
    positive_count: int = 0
    negative_count: int = 0
    critical_count: int = 0
    key_events: tuple[KeyEvent, ...] = field(default_factory=tuple)
    summary: str = ""


class SentimentClassifier(Protocol):
    def classify(
        self, items: list[NewsItem], price_change_pct_24h: float = 0.0
    ) -> SentimentVerdict: ...


POSITIVE_KEYWORDS = frozenset(
    {
        "surge",
        "soar",
        "rally",
        "bullish",
        "all-time high",
        "record high",
        "breakout",
        "adoption",
        "approval",
        "approved",
        "etf inflow",
        "inflows",
        "institutional buying",
        "accumulation",
        "partnership",
        "upgrade",
        "rebound",
        "recovery",
    }
)

NEGATIVE_KEYWORDS = frozenset(
    {
        "crash",
        "plunge",
        "tumble",
        "slump",
        "bearish",
        "sell-off",
        "selloff",
        "dump",
        "outflow",
        "liquidation",
        "lawsuit",
        "investigation",
        "crackdown",
        "banned",
        "downgrade",
        "recession",
        "fud",
        "warning",
    }
)

CRITICAL_KEYWORDS = frozenset(
    {
        "hack",
        "exploit",
        "bankrupt",
        "insolven",
        "collapse",
        "fraud",
        "halts withdrawals",
        "withdrawals halted",
        "rug pull",
        "seized",
        "delisted",
        "sec charges",
    }
)

MAX_KEY_EVENTS = 3
SCORE_THRESHOLD = 3
DIVERGENCE_MOVE_PCT = 5.0


def _matches(text: str, vocabulary: frozenset[str]) -> bool:
    return any(word in text for word in vocabulary)


class KeywordSentimentClassifier:
    """Substring matcher over three closed vocabularies.

    An item may match several vocabularies at once; every match counts.
    Positive matches add 1 to the score, negative subtract 1 and critical
    subtract 2.
    """

    def __init__(
        self,
        positive: Iterable[str] = POSITIVE_KEYWORDS,
        negative: Iterable[str] = NEGATIVE_KEYWORDS,
        critical: Iterable[str] = CRITICAL_KEYWORDS,
    ) -> None:
        self.positive = frozenset(w.lower() for w in positive)
        self.negative = frozenset(w.lower() for w in negative)
        self.critical = frozenset(w.lower() for w in critical)

    def classify(
        self, items: list[NewsItem], price_change_pct_24h: float = 0.0
    ) -> SentimentVerdict:
        if not items:
            return SentimentVerdict(summary="no news items available; sentiment neutral")

        positive = negative = critical = score = 0
        events: list[KeyEvent] = []
        seen_titles: set[str] = set()

        for item in items:
            text = item.title.lower()
            is_pos = _matches(text, self.positive)
            is_neg = _matches(text, self.negative)
            is_crit = _matches(text, self.critical)
            if is_pos:
                positive += 1
                score += 1
            if is_neg:
                negative += 1
                score -= 1
            if is_crit:
                critical += 1
                score -= 2
            if not (is_pos or is_neg or is_crit):
                continue
            if len(events) < MAX_KEY_EVENTS and item.title not in seen_titles:
                kind: EventType = "critical" if is_crit else ("negative" if is_neg else "positive")
                events.append(KeyEvent(title=item.title, source=item.source, type=kind))
                seen_titles.add(item.title)

        impact = self._resolve_impact(score, critical, price_change_pct_24h)
        summary = (
            f"{len(items)} items: {positive} positive, {negative} negative, "
            f"{critical} critical (score {score:+d}) -> {impact.value}"
        )
        return SentimentVerdict(
            impact=impact,
            sentiment_score=score,
            positive_count=positive,
            negative_count=negative,
            critical_count=critical,
            key_events=tuple(events),
            summary=summary,
        )

    @staticmethod
    def _resolve_impact(score: int, critical: int, change_24h: float) -> Impact:
        if critical > 0:
            return Impact.CRITICAL_NEGATIVE
        if score >= SCORE_THRESHOLD:
            impact = Impact.POSITIVE
        elif score <= -SCORE_THRESHOLD:
            impact = Impact.NEGATIVE
        else:
            impact = Impact.NEUTRAL

        # Good news while price falls hard (or bad news into a rally) is read
        # as a divergence.
        if abs(change_24h) > DIVERGENCE_MOVE_PCT:
            if impact is Impact.POSITIVE and change_24h <= -DIVERGENCE_MOVE_PCT:
                return Impact.DIVERGENCE_POSITIVE
            if impact is Impact.NEGATIVE and change_24h >= DIVERGENCE_MOVE_PCT:
                return Impact.DIVERGENCE_NEGATIVE
        return impact


def normalize_news(raw_items: Iterable[Any] | None) -> list[NewsItem]:
    """Coerce raw payload items to :class:`NewsItem`, skipping malformed ones.

    Accepts ``NewsItem`` instances, mappings with ``title``/``source`` keys,
    objects exposing those attributes and bare title strings.
    """

    items: list[NewsItem] = []
    for idx, raw in enumerate(raw_items or []):
        if isinstance(raw, NewsItem):
            items.append(raw)
            continue
        if isinstance(raw, str):
            data: Any = {"title": raw}
        elif isinstance(raw, Mapping):
            data = raw
        else:
            data = {"title": getattr(raw, "title", None), "source": getattr(raw, "source", None)}
        try:
            items.append(NewsItem.model_validate(data))
        except ValidationError as exc:
            log_event(E_NEWS_ITEM_INVALID, index=idx, error=str(exc).splitlines()[0])
    return items


def interpret_news(
    raw_items: Iterable[Any] | None,
    price_change_pct_24h: float = 0.0,
    classifier: SentimentClassifier | None = None,
) -> SentimentVerdict:
    clf = classifier or KeywordSentimentClassifier()
    return clf.classify(normalize_news(raw_items), price_change_pct_24h)


__all__ = [
    "Impact",
    "NewsItem",
    "KeyEvent",
    "SentimentVerdict",
    "SentimentClassifier",
    "KeywordSentimentClassifier",
    "POSITIVE_KEYWORDS",
    "NEGATIVE_KEYWORDS",
    "CRITICAL_KEYWORDS",
    "normalize_news",
    "interpret_news",
]
