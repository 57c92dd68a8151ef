"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from app.config import get_settings

ROOT_LOGGER_NAME = "onsite_relay"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class LoggingConfig:
    """Configure the application logger once; later instances are no-ops."""

    _configured = False

    def __init__(self, level: Optional[str] = None) -> None:
        if LoggingConfig._configured:
            return
        level_name = (level or get_settings().log_level or "INFO").upper()
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.addHandler(handler)
        root.setLevel(getattr(logging, level_name, logging.INFO))
        LoggingConfig._configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a child of the application logger."""
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
