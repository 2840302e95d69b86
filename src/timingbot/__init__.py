"""timingbot – market timing engine turning indicators and sentiment into alerts."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import tomllib

try:
    __version__ = version("timingbot")
except PackageNotFoundError:
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    __version__ = tomllib.loads(pyproject.read_text())["project"]["version"]

from .engine import EngineResult, evaluate

__all__ = ["__version__", "EngineResult", "evaluate"]
