"""structlog setup for a daily research run.

Once :func:`bind_run_context` has been called every event carries the run's
``run_id`` and ``topic``. Output is one JSON object per line by default, or a
compact terminal line with ``--log-format text`` / ``LOG_FORMAT=text``.
"""

import logging
import os
import sys
from enum import Enum
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

PACKAGE = "daily_research"
DEFAULT_LEVEL = "INFO"
RUN_ID_WIDTH = 8
MAX_TEXT_VALUE = 60

# Everything else an event carries is nested under "extra"
ENVELOPE_KEYS = frozenset({"timestamp", "level", "logger", "message", "run_id", "topic"})


class LogFormat(str, Enum):
    JSON = "json"
    TEXT = "text"


# ============================================================================
# Run context
# ============================================================================


def bind_run_context(run_id: str, topic: str) -> None:
    """Tag every subsequent event of this run with its ID and topic."""
    structlog.contextvars.bind_contextvars(run_id=run_id, topic=topic)


def current_run_context() -> dict[str, str]:
    """The bound run ID and topic; empty before a run starts."""
    context = structlog.contextvars.get_contextvars()
    return {key: str(context[key]) for key in ("run_id", "topic") if key in context}


def clear_context_fields() -> None:
    structlog.contextvars.clear_contextvars()


# ============================================================================
# Processors
# ============================================================================


def _envelope(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Rename ``event`` to ``message`` and nest the event's own fields under ``extra``."""
    event_dict["message"] = event_dict.pop("event", "")
    extra = {key: event_dict.pop(key) for key in list(event_dict) if key not in ENVELOPE_KEYS}
    if extra:
        event_dict["extra"] = extra
    return event_dict


def _clip(value: Any) -> str:
    text = str(value)
    return text if len(text) <= MAX_TEXT_VALUE else f"{text[: MAX_TEXT_VALUE - 3]}..."


def render_text(_: WrappedLogger, __: str, event_dict: EventDict) -> str:
    """``HH:MM:SS [LEVEL] component: message [k=v, ...] [run:xxxxxxxx]``"""
    component = event_dict.get("logger", "").removeprefix(f"{PACKAGE}.") or PACKAGE
    line = f"{event_dict.get('timestamp', '')} [{event_dict.get('level', 'info').upper()}] "
    line += f"{component}: {event_dict.get('message', '')}"

    extra = event_dict.get("extra")
    if extra:
        line += " [" + ", ".join(f"{key}={_clip(value)}" for key, value in extra.items()) + "]"
    if run_id := event_dict.get("run_id"):
        line += f" [run:{str(run_id)[:RUN_ID_WIDTH]}]"
    return line


# ============================================================================
# Configuration
# ============================================================================


def resolve_log_format(value: str | None = None) -> LogFormat:
    """Explicit value first, then LOG_FORMAT; anything unrecognised means JSON."""
    raw = (value or os.environ.get("LOG_FORMAT") or "").strip().lower()
    return LogFormat.TEXT if raw == LogFormat.TEXT.value else LogFormat.JSON


def _resolve_level() -> int:
    name = os.environ.get("LOGGING_LEVEL", DEFAULT_LEVEL).strip().upper()
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def configure_structlog(log_format: LogFormat | str | None = None) -> None:
    """Route structlog through stdlib logging on stdout at ``LOGGING_LEVEL``."""
    level = _resolve_level()
    fmt = log_format if isinstance(log_format, LogFormat) else resolve_log_format(log_format)
    text = fmt is LogFormat.TEXT

    logging.basicConfig(format="%(message)s", level=level, stream=sys.stdout)
    logging.getLogger().setLevel(level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%H:%M:%S" if text else "iso", utc=not text),
        _envelope,
        render_text if text else structlog.processors.JSONRenderer(),
    ]

    # Uncached so loggers created at import time pick up the CLI's format
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name or PACKAGE)  # type: ignore[no-any-return]
