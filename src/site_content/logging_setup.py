"""
Logging Configuration

All modules log through named stdlib loggers under the "site" namespace.
This module installs one stderr handler on the root logger, either as
human-readable lines or as one JSON object per line for log collectors.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

_PLAIN_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


_installed_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "INFO", json_format: bool = False) -> logging.Handler:
    """
    Install the service log handler and return it.

    Safe to call more than once; later calls replace the handler installed by
    the previous call and leave any other root handlers alone.
    """
    global _installed_handler

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))

    root = logging.getLogger()
    if _installed_handler is not None:
        root.removeHandler(_installed_handler)
    root.addHandler(handler)
    root.setLevel(level.upper())
    _installed_handler = handler
    return handler
