"""Process-wide logging setup."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from washledger.core.config import get_settings

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the service name and environment."""

    def __init__(self, *, service: str, environment: str) -> None:
        super().__init__()
        self.service = service
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "service": self.service,
            "env": self.environment,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in _RESERVED_ATTRS
        }
        if extra:
            payload["extra"] = extra
        return json.dumps(payload, default=str)


def build_formatter() -> logging.Formatter:
    settings = get_settings()
    if settings.log_format == "json":
        return JsonFormatter(service=settings.app_name, environment=settings.app_env)
    return logging.Formatter(TEXT_FORMAT)


def init_logging() -> None:
    """Attach a stdout handler to the root logger unless one is already installed."""

    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter())
    root.setLevel(get_settings().log_level.upper())
    root.addHandler(handler)
