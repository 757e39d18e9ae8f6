"""
Centralized logging configuration.
Plain text output tagged with the current request id.
"""

import logging
import sys
import uuid
from contextvars import ContextVar

from app.core.config import settings


request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    return request_id_var.get() or ""


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def generate_request_id() -> str:
    return str(uuid.uuid4())[:8]


class RequestIdFilter(logging.Filter):
    """Attach the request id from context to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(request_id)s | %(name)s | %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger("app")
    root.setLevel((level or settings.LOG_LEVEL).upper())
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Loggers live under the "app" namespace so setup_logging governs them."""
    if not name.startswith("app"):
        name = f"app.{name}"
    return logging.getLogger(name)
