"""Process-wide logging for the controller, its worker threads and agents."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from reservations.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
DEFAULT_LEVEL = "INFO"

_configured = False


def _settings_level() -> str:
    try:
        return get_settings().log_level
    except ValueError:
        # A bad environment value must not stop logging from coming up;
        # the entry points report it once settings are read for real.
        return DEFAULT_LEVEL


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler once.

    The dispatcher and clock threads write through the same handler, and the
    thread name column tells their lines apart.
    """
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=(level or _settings_level()).upper(),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
