"""
Logging setup shared by the API and the maintenance scripts.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that are too chatty at INFO
NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "uvicorn.access",
    "httpx",
    "httpcore",
]


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """
    Configure the root logger with a single stdout handler.

    Safe to call more than once; existing handlers are replaced.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
