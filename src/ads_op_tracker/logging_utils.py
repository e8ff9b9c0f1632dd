"""Logging helpers for the operation tracker."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from ads_op_tracker.config import LoggingSettings, load_settings

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_logging_configured = False
_logging_lock = threading.Lock()

_logger = logging.getLogger(__name__)


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Install stderr (and optional file) handlers on the root logger."""
    global _logging_configured

    if settings is None:
        settings = load_settings().logging
    level = getattr(logging, settings.level.upper(), logging.INFO)
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    file_error: OSError | None = None
    if settings.file:
        try:
            Path(settings.file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.file)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as exc:
            file_error = exc

    logging.basicConfig(level=level, handlers=handlers, force=True)
    if file_error is not None:
        _logger.warning("Failed to open log file %s: %s", settings.file, file_error)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    if not _logging_configured:
        with _logging_lock:
            if not _logging_configured:
                configure_logging()
    return logging.getLogger(name)
