import logging
import sys

from fuelflow.core.config import settings

LOGGER_NAME = "fuelflow"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a console handler to the package logger (idempotent)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel((level or settings.LOG_LEVEL).upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(handler)
    return logger
