"""Log file placement and handler installation for the ``cursormark`` logger."""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path

__all__ = ["LOG_FILE_NAME", "log_dir_for", "setup_logging"]

LOG_FILE_NAME = "cursormark.log"
PACKAGE_LOGGER = "cursormark"

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_MAX_BYTES = 256_000
_BACKUP_COUNT = 1

# Handlers installed by the last setup_logging() call.
_INSTALLED: list[logging.Handler] = []


def log_dir_for(settings_path: Path) -> Path:
    """Logs live in ``logs/`` beside the settings file unless ``CURSORMARK_LOG_DIR`` is set."""

    override = os.environ.get("CURSORMARK_LOG_DIR")
    if override:
        return Path(override).expanduser()
    return settings_path.parent / "logs"


def setup_logging(level: int, *, log_dir: Path, console: bool = True) -> Path:
    """Install a rotating file handler (and stderr output) on the package logger.

    The root logger is left alone so an embedding host keeps its own
    configuration. Calling again replaces the handlers from the previous call.
    """

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    while _INSTALLED:
        handler = _INSTALLED.pop()
        package_logger.removeHandler(handler)
        handler.close()

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    formatter = logging.Formatter(_FORMAT)

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    _INSTALLED.append(file_handler)
    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        _INSTALLED.append(console_handler)

    for handler in _INSTALLED:
        package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return log_path
