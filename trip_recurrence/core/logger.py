"""
Logging setup.

Every module asks for its logger through ``setup_logger(__name__)`` so that
handlers and levels are configured in one place.
"""

import logging
import sys

from trip_recurrence.core.config import get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return

    settings = get_settings()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    root = logging.getLogger("trip_recurrence")
    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL.upper())
    _configured = True


def setup_logger(name: str) -> logging.Logger:
    """Return a logger under the package hierarchy."""
    _configure_root()
    if not name.startswith("trip_recurrence"):
        name = f"trip_recurrence.{name}"
    return logging.getLogger(name)


logger = setup_logger("trip_recurrence")
