"""Process-wide logging setup for the service and the engine."""

from __future__ import annotations

import logging
from typing import Iterable

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DEFAULT_LOG_LEVEL = logging.INFO
LOGGER_NAMES = ("cuadrante", "shift_engine")

_LOGGER_INITIALIZED = False


def configure_logging(
    level: int | str = DEFAULT_LOG_LEVEL,
    extra_handlers: Iterable[logging.Handler] | None = None,
) -> logging.Logger:
    """Attach one stream handler to the package loggers and return the service logger."""
    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        for name in LOGGER_NAMES:
            logging.getLogger(name).setLevel(level)
        return logging.getLogger(LOGGER_NAMES[0])

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if extra_handlers:
        handlers.extend(extra_handlers)
    for handler in handlers:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        for handler in handlers:
            logger.addHandler(handler)

    logging.captureWarnings(True)
    _LOGGER_INITIALIZED = True
    service_logger = logging.getLogger(LOGGER_NAMES[0])
    service_logger.info("Logging initialized at %s", logging.getLevelName(service_logger.level))
    return service_logger


def reset_logging() -> None:
    """Detach and close the handlers installed by ``configure_logging``."""
    global _LOGGER_INITIALIZED
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            try:
                handler.close()
            finally:
                logger.removeHandler(handler)
        logger.propagate = True
    _LOGGER_INITIALIZED = False
