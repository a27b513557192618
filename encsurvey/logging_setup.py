"""Logging for the encrypted survey service.

Contract, algebra and route modules log `key=value` event lines through
`logging.getLogger(__name__)`. This module installs one stdout handler on the
root logger and sets the `encsurvey` level from configuration.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig
from typing import Any, Dict

SERVICE_LOGGER = "encsurvey"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Return the dictConfig for a service logging at `level`."""
    console = {"level": "INFO", "handlers": ["console"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s:%(name)s:%(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
        "loggers": {
            SERVICE_LOGGER: {"level": level.upper()},
            # Statement echo only when explicitly debugging the database layer
            "sqlalchemy.engine": {"level": "WARNING"},
            "uvicorn": dict(console),
            "uvicorn.error": dict(console),
            "uvicorn.access": dict(console),
        },
    }


def configure_logging(level: str = "INFO") -> None:
    """Configure logging once, then only adjust the service level.

    An existing root handler (pytest capture, reloaders) means the process has
    already been configured; installing a second one would duplicate output.
    """
    level = level.upper()
    if level not in LEVELS:
        raise ValueError(f"unknown log level {level!r}")
    if logging.getLogger().handlers:
        logging.getLogger(SERVICE_LOGGER).setLevel(level)
        return
    dictConfig(build_logging_config(level))


__all__ = ["LEVELS", "SERVICE_LOGGER", "build_logging_config", "configure_logging"]
