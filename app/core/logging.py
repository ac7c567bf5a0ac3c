"""AdWizard — Structured JSON Logging.

Graph API URLs and error texts can carry user access tokens, so token values
are masked before a line is written.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone

from app.config import settings

EXTRA_FIELDS = (
    "endpoint",
    "entity_id",
    "record_id",
    "user_id",
    "duration_ms",
    "status_code",
)

_TOKEN_PATTERN = re.compile(r"(access_token|input_token|client_secret)=([^&\s\"']+)")


def redact(text: str) -> str:
    """Mask credential query parameters inside a log message."""
    return _TOKEN_PATTERN.sub(r"\1=****", text)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the known extra fields lifted out."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = redact(self.formatException(record.exc_info))
        entry.update(
            {key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)}
        )
        return json.dumps(entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``adwizard`` namespace writing JSON to stdout."""
    logger = logging.getLogger(f"adwizard.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger
