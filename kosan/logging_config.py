# kosan/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from .config import settings
from .middleware.request_context import current_context

# Record attributes lifted into the JSON line when a call site passes them via extra=.
STRUCTURED_EXTRAS = ("room_id", "resident_id", "payment_id", "expense_id", "bucket", "event", "http")

# Chatty third-party loggers pinned to WARNING regardless of LOG_LEVEL.
QUIET_LOGGERS = ("multipart", "python_multipart", "PIL")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line, stamped in the kos's local timezone.

    The request context contributes request_id and the acting admin, so a
    resident or payment mutation can be traced back to who made it.
    """

    def __init__(self, tz_name: str = "UTC"):
        super().__init__()
        self.tz = ZoneInfo(tz_name)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=self.tz).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        ctx = current_context()
        if ctx is not None:
            payload["request_id"] = ctx.request_id
            if ctx.admin_id is not None:
                payload["admin_id"] = ctx.admin_id
        if "admin_id" not in payload and hasattr(record, "admin_id"):
            payload["admin_id"] = record.admin_id

        for k in STRUCTURED_EXTRAS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> None:
    level = settings.log_level.upper()

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(settings.timezone))
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(settings.sql_log_level.upper())
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
