from __future__ import annotations

from .settings import HistorySettings, NotifySettings, ScoringSettings, Settings
from .loader import apply_env_overrides, load_settings, validate_config

__all__ = [
    "HistorySettings",
    "NotifySettings",
    "ScoringSettings",
    "Settings",
    "apply_env_overrides",
    "load_settings",
    "validate_config",
]
