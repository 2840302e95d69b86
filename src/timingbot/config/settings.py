from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..decision import RiskProfile
from ..errors import ConfigError


class ScoringSettings(BaseModel):
    """Indicator windows and the optional scoring variants."""

    model_config = ConfigDict(frozen=True)

    rsi_period: int = 14
    bollinger_period: int = 20
    rolling_low_period: int = 90
    medium_sma_period: int = 50
    long_sma_period: int = 200
    # "undefined" skips RSI rules on short history, "neutral" scores it as 50.
    rsi_insufficient: Literal["undefined", "neutral"] = "undefined"
    near_band_bonus: bool = False
    rolling_low_bonus: int = 5

    @field_validator(
        "rsi_period",
        "bollinger_period",
        "rolling_low_period",
        "medium_sma_period",
        "long_sma_period",
    )
    @classmethod
    def _check_period(cls, v: int) -> int:
        if v < 2:
            raise ValueError("indicator periods must be >= 2")
        return v

    @field_validator("rolling_low_bonus")
    @classmethod
    def _check_bonus(cls, v: int) -> int:
        if v not in (0, 5, 10):
            raise ValueError("scoring.rolling_low_bonus must be one of 0, 5, 10")
        return v


class NotifySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    buy_threshold: int = 70
    sell_threshold: int = 70
    only_strong_signals: bool = False
    min_score_delta: int = 10

    @field_validator("buy_threshold", "sell_threshold")
    @classmethod
    def _check_threshold(cls, v: int) -> int:
        if not (0 <= v <= 100):
            raise ValueError("notify thresholds must be in [0, 100]")
        return v

    @field_validator("min_score_delta")
    @classmethod
    def _check_delta(cls, v: int) -> int:
        if v < 0:
            raise ValueError("notify.min_score_delta must be >= 0")
        return v


class HistorySettings(BaseModel):
    max_len: int = 200
    min_points: int = 50

    @model_validator(mode="after")
    def _check_sizes(self) -> "HistorySettings":
        if not (1 <= self.min_points <= self.max_len):
            raise ValueError("1 <= history.min_points <= history.max_len")
        return self


class Settings(BaseModel):
    symbol: str = "BTC"
    interval_minutes: int = 15
    risk_profile: RiskProfile = RiskProfile.MODERATE
    notify: NotifySettings = Field(default_factory=NotifySettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    @field_validator("interval_minutes")
    @classmethod
    def _check_interval(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("interval_minutes must be > 0")
        return v

    @classmethod
    def from_file(cls, path: str | Path) -> "Settings":
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"config file not found: {p}")
        return cls(**read_config_file(p))


def read_config_file(p: Path) -> dict[str, Any]:
    if p.suffix.lower() in {".yml", ".yaml"}:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    elif p.suffix.lower() == ".json":
        data = json.loads(p.read_text(encoding="utf-8"))
    else:
        raise ConfigError("Supported: .yaml/.yml/.json")
    if not isinstance(data, dict):
        raise ConfigError(f"{p}: top level must be a mapping")
    return data


__all__ = ["ScoringSettings", "NotifySettings", "HistorySettings", "Settings", "read_config_file"]
