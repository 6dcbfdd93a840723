"""Logging setup for cyx.

Library modules only call ``logging.getLogger(__name__)``. Handlers are
installed by the application entry point through ``configure_logging``.

Example:
    >>> from cyx.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", format="json")
    >>> get_logger("cache").info("ready")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Literal

ROOT_LOGGER = "cyx"

# Attributes every LogRecord carries; anything else came in via ``extra=``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys() | {"message", "asctime"}
)


class JSONFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno >= logging.ERROR:
            data["location"] = f"{record.pathname}:{record.lineno}"

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                data[key] = value

        return json.dumps(data, default=str)


class HumanFormatter(logging.Formatter):
    """Compact single-line format for terminals."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )


def configure_logging(
    level: str | int = "WARNING",
    format: Literal["human", "json"] = "human",
) -> logging.Logger:
    """Install a stderr handler on the ``cyx`` logger.

    Calling it again replaces the previous handler.

    Args:
        level: Log level name or number.
        format: "human" for terminals, "json" for machine consumption.

    Returns:
        The configured ``cyx`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(logger.handlers):
        if getattr(handler, "_cyx_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if format == "json" else HumanFormatter())
    handler._cyx_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger inside the ``cyx`` namespace."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
