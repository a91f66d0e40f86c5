"""Structured logging for the D&D 5E character roster.

Events go through structlog and render as coloured console lines, or as
JSON lines when ``DND_ROSTER_LOG_JSON`` is set. Roster records (characters,
companions, choices) passed as event values are reduced to a short label,
so logging a character never dumps its whole sheet.

Example:
    >>> from dnd_roster.core.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Rest taken", character=character, hp=22)
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel
from structlog.types import Processor


if TYPE_CHECKING:
    from structlog.types import EventDict, WrappedLogger


APP_NAME = "dnd_roster"

# Chatty third-party loggers kept at WARNING.
_QUIET_LOGGERS = ("urllib3", "requests", "watchdog")


# =============================================================================
# Processors
# =============================================================================


def add_app_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def record_label(record: BaseModel) -> str | dict[str, Any]:
    """Short form of a roster record for log output.

    Records with a name become ``"Name#id"`` (or just the name while
    unsaved). Anything else is dumped with ``None`` fields dropped.
    """
    name = getattr(record, "display_name", None) or getattr(record, "name", None)
    if isinstance(name, str):
        label = name or type(record).__name__
        record_id = getattr(record, "id", None)
        return label if record_id is None else f"{label}#{record_id}"
    return record.model_dump(mode="json", exclude_none=True)


def summarize_records(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace pydantic records in the event with their labels."""
    for key, value in event_dict.items():
        if isinstance(value, BaseModel):
            event_dict[key] = record_label(value)
    return event_dict


# =============================================================================
# Setup
# =============================================================================


def configure_logging(*, level: str = "INFO", json_format: bool = False) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Render JSON lines instead of console output.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_name,
        summarize_records,
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # requests and streamlit log through the stdlib
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=numeric_level,
        stream=sys.stdout,
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach values (such as the selected ``character_id``) to later events."""
    structlog.contextvars.bind_contextvars(**kwargs)


__all__ = [
    "APP_NAME",
    "bind_context",
    "configure_logging",
    "get_logger",
    "record_label",
    "summarize_records",
]
