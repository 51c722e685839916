"""
Logging setup.

Configures the root handler once at startup. Modules keep using named
loggers via ``logging.getLogger("<area>")``.
"""

import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Attach a stream handler to the root logger (idempotent)."""
    global _configured
    if _configured:
        return

    resolved = (level or settings.LOG_LEVEL).upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(getattr(logging, resolved, logging.INFO))
    root.addHandler(handler)

    # SQL echo stays off unless explicitly requested through the level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
