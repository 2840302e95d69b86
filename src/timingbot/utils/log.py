from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass

import structlog

# -- Event names -----------------------------------------------------------
# Short string codes so they are easy to search for in aggregated log output.

# Analysis cycle lifecycle.
E_CYCLE_START = "cycle_start"
E_CYCLE_SKIPPED = "cycle_skipped"
E_CYCLE_ABORTED = "cycle_aborted"
E_CYCLE_REENTRANT = "cycle_reentrant"

# Scoring and decision.
E_DECISION = "decision"
E_NEWS_ITEM_INVALID = "news_item_invalid"

# Notification gate and delivery.
E_NOTIFY_EMIT = "notify_emit"
E_NOTIFY_SUPPRESS = "notify_suppress"
E_ALERT = "alert"
E_NOTIFIER_ERROR = "notifier_error"

# Monitor control.
E_MONITOR_PAUSED = "monitor_paused"
E_MONITOR_RESUMED = "monitor_resumed"

# Generic error/diagnostics events.
E_ERROR = "error"


# -- Reason codes ----------------------------------------------------------
R_INSUFFICIENT_HISTORY = "insufficient_history"
R_FETCH_FAILED = "fetch_failed"
R_INVALID_INPUT = "invalid_input"
R_CYCLE_FAILED = "cycle_failed"


@dataclass(slots=True)
class TelemetryContext:
    """Context information bound to every telemetry event.

    All fields are optional so callers supply whatever identifiers they have.
    """

    run_id: str | None = None
    symbol: str | None = None
    profile: str | None = None
    cycle: int | None = None


def new_id(prefix: str) -> str:
    """Return a short unique identifier with ``prefix``.

    Examples
    --------
    >>> new_id("run")  # doctest: +SKIP
    'run_4f9d2ab3'
    """

    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def log_event(event: str, ctx: TelemetryContext | None = None, **fields) -> None:
    """Log ``event`` via structlog, binding context and extra fields.

    Parameters
    ----------
    event:
        Event name constant, e.g. :data:`E_NOTIFY_EMIT`.
    ctx:
        Optional :class:`TelemetryContext` whose non-``None`` attributes will be
        bound to the log record.
    **fields:
        Additional key/value pairs describing the event.
    """

    logger = structlog.get_logger()
    if ctx is not None:
        # Only bind values that are not ``None`` to keep the log output compact.
        logger = logger.bind(**{k: v for k, v in asdict(ctx).items() if v is not None})
    logger = logger.bind(event=event)
    logger.info(event, **fields)


def setup_logger(level: str = "INFO"):
    """Configure and return a structlog logger.

    Parameters
    ----------
    level:
        Logging level name, e.g. ``"INFO"`` or ``"DEBUG"``.

    Returns
    -------
    structlog.stdlib.BoundLogger
        Configured logger instance.
    """

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=numeric_level)
    processors = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(),
    ]
    # Events below ``level`` are dropped so CLI output stays machine readable.
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
    return structlog.get_logger()


__all__ = [
    "E_CYCLE_START",
    "E_CYCLE_SKIPPED",
    "E_CYCLE_ABORTED",
    "E_CYCLE_REENTRANT",
    "E_DECISION",
    "E_NEWS_ITEM_INVALID",
    "E_NOTIFY_EMIT",
    "E_NOTIFY_SUPPRESS",
    "E_ALERT",
    "E_NOTIFIER_ERROR",
    "E_MONITOR_PAUSED",
    "E_MONITOR_RESUMED",
    "E_ERROR",
    "R_INSUFFICIENT_HISTORY",
    "R_FETCH_FAILED",
    "R_INVALID_INPUT",
    "R_CYCLE_FAILED",
    "TelemetryContext",
    "new_id",
    "log_event",
    "setup_logger",
]
