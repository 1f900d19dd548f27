"""Logging for Touchline.

Everything logs under the "touchline" logger. setup_logging() attaches two
handlers to it: a console stream that stays quiet unless something needs
attention (or --debug is on), and a size-rotated file that records every
event as one JSON object per line.

Structured fields travel in the "context" extra:

    logger = get_logger(__name__)
    logger.info("Cadence recomputed", extra={"context": {"contact_id": 123}})
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from touchline.core.config import get_config

ROOT_LOGGER_NAME = "touchline"
LOG_FILE_NAME = "touchline.log"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3

_installed_handlers: list[logging.Handler] = []


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's own creation time."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        context = _context_of(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, sort_keys=True)


class ConsoleFormatter(logging.Formatter):
    """Short single-line records with context appended as key=value pairs."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = _context_of(record)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} [{pairs}]"
        return line


def setup_logging(log_dir: Optional[Path] = None, debug: bool = False) -> None:
    """Attach the console and file handlers to the touchline logger.

    Calling it again is a no-op until reset_logging() runs.

    Args:
        log_dir: Where touchline.log goes. Defaults to the configured log path.
        debug: Show DEBUG and up on the console instead of WARNING and up
    """
    if _installed_handlers:
        return

    if log_dir is None:
        log_dir = get_config().log_path
    log_dir.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if debug else logging.WARNING)
    console.setFormatter(ConsoleFormatter())

    log_file = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    log_file.setLevel(logging.DEBUG)
    log_file.setFormatter(JSONFormatter())

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    for handler in (console, log_file):
        root.addHandler(handler)
        _installed_handlers.append(handler)

    root.debug("Logging ready", extra={"context": {"log_file": str(log_dir / LOG_FILE_NAME)}})


def reset_logging() -> None:
    """Detach and close the handlers setup_logging() attached."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, nested under "touchline" exactly once."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
