"""
NYC Shootings - Logging Setup

Configures the root logger from the ``logging`` section of the settings.
Modules log through ``logging.getLogger(__name__)`` and pass structured
context with ``extra=``; the JSON formatter keeps that context as fields.

Usage:
    from nyc_shootings.shared.log_setup import configure_logging

    configure_logging()  # Uses get_config()
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from nyc_shootings.shared.config import Settings, get_config

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes every LogRecord has; anything else came in through extra=
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects, including extra fields."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            payload["timestamp"] = datetime.fromtimestamp(record.created, UTC).isoformat()

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(config: Settings | None = None) -> logging.Logger:
    """
    Install a single stream handler on the root logger.

    Args:
        config: Configuration object (uses default if not provided)

    Returns:
        The configured root logger
    """
    config = config or get_config()
    log_config = config.logging

    handler = logging.StreamHandler()
    if log_config.format == "json":
        handler.setFormatter(JsonFormatter(include_timestamp=log_config.include_timestamp))
    else:
        fmt = TEXT_FORMAT if log_config.include_timestamp else TEXT_FORMAT.split(" - ", 1)[1]
        handler.setFormatter(logging.Formatter(fmt))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_config.level.upper())

    return root
