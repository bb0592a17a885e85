"""Logging configuration for the application.

Every record gets request_id and actor attributes from the request context
(see crm_access.shared.context), so a failed login or a denied permission
can be traced back to one request and one user.
"""

import logging
import sys

from crm_access.core.config import get_settings
from crm_access.shared.context import get_actor_context, get_request_id

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[request=%(request_id)s actor=%(actor)s] %(message)s"
)

# Chatty client libraries: httpx logs every Firestore call at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "google.auth")


class RequestContextFilter(logging.Filter):
    """Attach request_id and actor to each record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        actor = get_actor_context()
        record.request_id = get_request_id() or "-"
        record.actor = actor.user_id or actor.actor_type.value
        return True


def setup_logging() -> None:
    """Configure application-wide logging on stdout.

    Level is DEBUG when settings.debug is True, otherwise INFO.
    """
    settings = get_settings()
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        handlers=[handler],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name."""
    return logging.getLogger(name)
