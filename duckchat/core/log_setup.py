"""structlog configuration and per-session log gating.

Library modules log through `structlog.get_logger(__name__)` and never
configure output themselves; scripts call configure_logging() once.
"""

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog and stdlib logging for a script or app.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Render JSON lines instead of the console format.
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _drop_event(logger, method_name, event_dict):
    raise structlog.DropEvent


def session_logger(enabled: bool, **context):
    """Logger for one chat session.

    When `enabled` is False every event is dropped before rendering, which
    makes the session's logging a no-op regardless of global configuration.
    """
    if enabled:
        return structlog.get_logger("duckchat.session").bind(**context)
    return structlog.wrap_logger(None, processors=[_drop_event]).bind(**context)
