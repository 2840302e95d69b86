from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..errors import ConfigError
from .settings import Settings, read_config_file

# Environment overrides understood by :func:`load_settings`:
# ``ENV name -> (section, key)``; ``section`` ``None`` means top level.
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "CHECK_INTERVAL": (None, "interval_minutes"),
    "RISK_PROFILE": (None, "risk_profile"),
    "TIMINGBOT_SYMBOL": (None, "symbol"),
    "BUY_THRESHOLD": ("notify", "buy_threshold"),
    "SELL_THRESHOLD": ("notify", "sell_threshold"),
    "ONLY_STRONG_SIGNALS": ("notify", "only_strong_signals"),
}

CONFIG_ENV = "TIMINGBOT_CONFIG"


def _expand_env_user(s: str) -> str:
    return os.path.expanduser(os.path.expandvars(s))


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with values taken from ``env`` where set.

    Empty variables are ignored. Values are passed through as strings (bools
    excepted) so pydantic reports malformed numbers instead of silently
    falling back to defaults.
    """

    out = {k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items()}
    for name, (section, key) in ENV_OVERRIDES.items():
        raw = env.get(name)
        if raw is None or raw.strip() == "":
            continue
        value: Any = _parse_bool(raw) if key == "only_strong_signals" else raw.strip()
        if section is None:
            out[key] = value
        else:
            sub = out.get(section)
            if not isinstance(sub, dict):
                sub = {}
            sub[key] = value
            out[section] = sub
    return out


def load_settings(
    path: str | Path | None = None, env: Mapping[str, str] | None = None
) -> Settings:
    """Load :class:`Settings` from ``path`` and the environment.

    Priority order: environment variables > config file > model defaults.
    When ``path`` is ``None`` the ``TIMINGBOT_CONFIG`` variable is consulted.
    """

    env = os.environ if env is None else env
    if path is None:
        raw_path = env.get(CONFIG_ENV)
        path = _expand_env_user(raw_path) if raw_path else None

    data: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"config file not found: {p}")
        data = read_config_file(p)

    return Settings.model_validate(apply_env_overrides(data, env))


def validate_config(path: str | Path) -> tuple[bool, dict]:
    """Validate a configuration file.

    Returns
    -------
    tuple[bool, dict]
        ``(True, details)`` on success, ``(False, details)`` on failure.  The
        ``details`` dictionary contains either a ``message`` or ``error`` field.
    """

    from pydantic import ValidationError

    try:
        settings = load_settings(path, env={})
    except (ConfigError, ValidationError, yaml.YAMLError, ValueError) as exc:
        return False, {"error": str(exc)}

    message = f"OK: {settings.symbol} @ {settings.risk_profile.value}"
    return True, {"message": message}


__all__ = ["ENV_OVERRIDES", "apply_env_overrides", "load_settings", "validate_config"]
