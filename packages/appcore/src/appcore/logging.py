"""
Logging setup for entry points.

Call setup_logging() once, before building services. Library modules only
ever do logging.getLogger(__name__).
"""

import logging
import sys

from appcore.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Noisy third-party loggers kept at WARNING unless explicitly lowered
QUIET_LOGGERS = ("sqlalchemy.engine", "urllib3")


def setup_logging(level: str | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name; defaults to LOG_LEVEL from settings
    """
    level_name = (level or get_settings().LOG_LEVEL).upper()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level_name)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
