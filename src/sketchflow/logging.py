"""
Logging for sketchflow.

Loggers live under the ``sketchflow`` namespace: ``sketchflow.document`` reports
created shapes, bindings and frame growth at DEBUG, and ``sketchflow.export``
reports written files at INFO and skipped shape kinds at WARNING. Parsing,
layout and the renderers never log.

Nothing is printed until an application calls setup_logging (or attaches its
own handlers); the package logger only carries a NullHandler.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

PACKAGE_LOGGER = "sketchflow"
DEFAULT_FORMAT = "%(levelname)s %(name)s: %(message)s"

_package_logger = logging.getLogger(PACKAGE_LOGGER)
_package_logger.addHandler(logging.NullHandler())

# Handlers installed by setup_logging; application handlers are left alone
_installed_handlers: list[logging.Handler] = []


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logging(
    level: str | int = "WARNING",
    stream: TextIO | None = None,
    file: str | None = None,
    format: str = DEFAULT_FORMAT,
) -> None:
    """
    Send sketchflow log records to a stream and optionally a file.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Level name (e.g. "DEBUG") or number
        stream: Output stream (defaults to stderr)
        file: Optional path of a log file
        format: Log record format

    Raises:
        ValueError: If the level name is unknown

    Example:
        >>> setup_logging("DEBUG")  # trace materialization
        >>> setup_logging("INFO", file="export.log")  # record written files
    """
    level = _resolve_level(level)

    for handler in _installed_handlers:
        _package_logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    formatter = logging.Formatter(format)
    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if file:
        handlers.append(logging.FileHandler(file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        _package_logger.addHandler(handler)
        _installed_handlers.append(handler)

    _package_logger.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """
    Get the logger of a sketchflow module.

    Args:
        name: Module name, bare ("export") or qualified ("sketchflow.export")
    """
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
