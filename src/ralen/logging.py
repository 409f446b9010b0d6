"""Logging configuration."""
import datetime
import json
import logging
import os
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor

DEFAULT_LOG_LEVEL = "WARNING"
IGNORED_LOGGERS = ["mcp.server.session", "mcp.server.stdio", "aiohttp", "asyncio"]


def add_timestamp(_, __, event_dict: EventDict) -> EventDict:
    """Add ISO timestamp to the event dict."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.datetime.now(datetime.timezone.utc).isoformat()
    return event_dict


class CompactJSONRenderer:
    """Single-line JSON renderer with minimal output."""

    def __call__(self, _: Any, __: str, event_dict: EventDict) -> str:
        items = {
            "ts": event_dict.pop("timestamp", None),
            "lvl": event_dict.pop("level", "???"),
            "msg": event_dict.pop("event", ""),
        }
        if logger_name := event_dict.pop("logger", None):
            items["logger"] = logger_name
        if event_dict:
            items["data"] = event_dict
        return json.dumps(items, separators=(",", ":"), default=str)


def resolve_level(level: Optional[str] = None) -> int:
    """Map a level name (or RALEN_LOG_LEVEL) to a logging level number."""
    name = (level or os.environ.get("RALEN_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {name}")
    return value


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structured logging for the application.

    Log events always go to stderr so stdout stays free for runtime output:
    - non-tty stderr: compact single-line JSON
    - tty stderr: structlog console renderer
    """
    level_no = resolve_level(level)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level_no, force=True)
    for name in IGNORED_LOGGERS:
        logging.getLogger(name).setLevel(max(level_no, logging.WARNING))

    shared: List[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]

    if sys.stderr.isatty():
        processors = shared + [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = shared + [
            add_timestamp,
            structlog.processors.format_exc_info,
            CompactJSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
