"""Logging setup for the discovery service."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LOG_FILE = "logs/pawmatch.log"

# Client libraries that log every RPC and token refresh at DEBUG.
NOISY_LOGGERS = (
    "google.auth",
    "google.api_core",
    "grpc",
    "urllib3",
    "httpx",
    "httpcore",
)


def setup_logging(*, debug: bool = False, log_file: str | None = DEFAULT_LOG_FILE) -> None:
    """Configure root logging for the service.

    Console output is INFO+ (DEBUG+ when ``debug``). When ``log_file`` is set
    a rotating file also receives DEBUG+. Firestore and HTTP client loggers
    are capped at WARNING whatever the level.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=5)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Avoid duplicate handlers when reloading in dev.
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(component: str) -> logging.Logger:
    """Child of the service logger, e.g. ``pawmatch.rate_limit``."""

    return logger.getChild(component)


logger = logging.getLogger("pawmatch")
