"""Structured JSON logging for the client.

Every entry carries timestamp, level, logger and message. Bearer tokens,
passwords and Authorization headers are redacted before output.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, UTC


_SENSITIVE_PATTERNS = re.compile(
    r"(password|token|secret|fernet.key|authorization)[\s]*[=:]\s*\S+",
    re.IGNORECASE,
)
_BEARER_PATTERN = re.compile(r"Bearer\s+\S+", re.IGNORECASE)


def sanitize(text: str) -> str:
    text = _BEARER_PATTERN.sub("Bearer [REDACTED]", text)
    return _SENSITIVE_PATTERNS.sub("[REDACTED]", text)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize(record.getMessage()),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = sanitize(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO") -> None:
    """Install the JSON formatter on the root logger, replacing existing handlers."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
