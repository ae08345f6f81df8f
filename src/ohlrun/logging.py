"""Logging setup for the ``ohlrun`` logger tree.

Console output follows the requested level; an optional log file always
receives DEBUG records so a failed run can be inspected afterwards.
"""

from __future__ import annotations

import logging as py_logging
import sys
from pathlib import Path
from typing import TextIO

LOGGER_NAME = "ohlrun"
LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "WARNING": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
DEFAULT_LOG_PATH = Path("~/.config/ohlrun/logs/ohlrun.log")
_FALLBACK_LOG_PATH = Path(".ohlrun/logs/ohlrun.log")
_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"


def _absolute(path: Path) -> Path:
    try:
        path = path.expanduser()
    except RuntimeError:
        pass
    return path if path.is_absolute() else path.resolve()


def default_log_path() -> Path:
    try:
        resolved = DEFAULT_LOG_PATH.expanduser()
    except RuntimeError:
        # No resolvable home directory.
        return (Path.cwd() / _FALLBACK_LOG_PATH).resolve()
    return _absolute(resolved)


def normalize_level(level: str) -> str:
    normalized = level.strip().upper()
    return "WARN" if normalized == "WARNING" else normalized


def _file_handler(log_file: str | Path, formatter: py_logging.Formatter) -> py_logging.Handler | None:
    log_path = _absolute(Path(log_file))
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = py_logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        return None
    handler.setLevel(py_logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = LOG_LEVELS.get(normalize_level(level), py_logging.INFO)
    formatter = py_logging.Formatter(_FORMAT)

    logger = py_logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    console = py_logging.StreamHandler(stream or sys.stderr)
    console.setLevel(resolved)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = _file_handler(log_file, formatter)
        if file_handler is not None:
            logger.addHandler(file_handler)

    logger.propagate = False
    return logger
