"""
Structured logging for ordering terminals.

Records go to stdout as JSON. The `orderline` package logger shares the
terminal's handler so service modules only ever call `get_logger(__name__)`.
"""

import logging
import sys
from collections.abc import Mapping
from typing import Any

from pythonjsonlogger import jsonlogger

PACKAGE_LOGGER = "orderline"

# Chatty third-party loggers kept at WARNING unless the terminal runs at DEBUG.
QUIET_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine")


def configure_logging(app_name: str, log_level: str = "INFO") -> logging.Logger:
    """
    Install the JSON handler on the terminal logger and the package logger.

    Calling it again (one app factory per test, for instance) only updates the
    level.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    terminal_logger = logging.getLogger(app_name)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for logger in (terminal_logger, package_logger):
        logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    if terminal_logger.handlers:
        return terminal_logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger", "asctime": "timestamp"},
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    terminal_logger.addHandler(handler)
    if not package_logger.handlers:
        package_logger.addHandler(handler)
    return terminal_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class TerminalLogAdapter(logging.LoggerAdapter):
    """Stamps terminal id and branch on every record; per-call `extra` wins."""

    def __init__(self, logger: logging.Logger, terminal_id: str, branch: str | None = None):
        super().__init__(logger, {"terminal": terminal_id, "branch": branch or "all"})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple:
        extra: Mapping[str, Any] = kwargs.get("extra") or {}
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs
