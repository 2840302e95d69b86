from __future__ import annotations


class TimingBotError(Exception):
    pass


class InvalidInputError(TimingBotError, ValueError):
    """Programmer or configuration error in engine inputs (fail fast)."""


class ConfigError(TimingBotError):
    pass


class FeedError(TimingBotError):
    """An upstream collaborator could not deliver its input for this cycle."""


__all__ = ["TimingBotError", "InvalidInputError", "ConfigError", "FeedError"]
