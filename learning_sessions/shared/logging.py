"""Logging configuration.

Modules log through ``logging.getLogger(__name__)``; this sets the root
handler and level once at process start.

Example:
    >>> from learning_sessions.shared.config import get_settings
    >>> from learning_sessions.shared.logging import setup_logging
    >>> setup_logging(get_settings())
"""

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from learning_sessions.shared.config import Settings

DEVELOPMENT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
PRODUCTION_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(settings: "Settings") -> None:
    """Configure standard library logging for the application.

    Args:
        settings: Application settings containing log_level and environment.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    fmt = DEVELOPMENT_FORMAT if settings.is_development else PRODUCTION_FORMAT

    logging.basicConfig(
        format=fmt,
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    # APScheduler is chatty at INFO about every one-shot job it runs
    logging.getLogger("apscheduler").setLevel(max(log_level, logging.WARNING))
