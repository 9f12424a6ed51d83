"""
Logging configuration.

WHAT: Root logger setup with the request id injected into every record.

WHY: Modules log through ``logging.getLogger(__name__)``; this module only
decides format and level once, at application start.
"""

import logging

from assetdesk.core.config import settings
from assetdesk.middleware.request_context import get_request_context

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Adds ``request_id`` to log records ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_request_context()
        record.request_id = context.request_id if context else "-"
        return True


def configure_logging(level: str | None = None) -> None:
    """
    Configure the root logger.

    Safe to call more than once; an existing handler installed by this
    function is reused.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)
    """
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())

    for handler in root.handlers:
        if getattr(handler, "_assetdesk", False):
            return

    handler = logging.StreamHandler()
    handler._assetdesk = True  # type: ignore[attr-defined]
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
