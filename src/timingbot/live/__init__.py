from __future__ import annotations

from .feeds import (
    CollectingNotifier,
    LogNotifier,
    PriceQuote,
    ReplayPriceFeed,
    StaticFearGreedFeed,
    StaticNewsFeed,
)
from .runner import MonitorRunner, PriceHistory

__all__ = [
    "CollectingNotifier",
    "LogNotifier",
    "MonitorRunner",
    "PriceHistory",
    "PriceQuote",
    "ReplayPriceFeed",
    "StaticFearGreedFeed",
    "StaticNewsFeed",
]
