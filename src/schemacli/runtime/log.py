"""Logging configuration for artifacts and the builder.

Records from the ``schemacli`` logger hierarchy go to stderr through
``rich.logging.RichHandler`` when Rich is importable, otherwise through
a plain :class:`logging.StreamHandler`.  An optional log file receives
the same records without colour.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from pathlib import Path
from typing import IO

from schemacli.exceptions import ValidationError

LOGGER_NAME: str = "schemacli"

LEVEL_NONE: int = logging.CRITICAL + 10
"""Above every standard level: nothing is emitted."""

LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "none": LEVEL_NONE,
}

_PLAIN_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the framework logger, or a child of it."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)


def resolve_level(level: str) -> int:
    """Translate a level name into a :mod:`logging` level."""
    try:
        return LEVELS[level.lower()]
    except KeyError:
        raise ValidationError(
            f"Invalid log level: {level}",
            hint="Use one of: " + ", ".join(LEVELS),
        ) from None


def detect_color_support(stream: IO[str] | None = None) -> bool:
    """Return ``False`` under ``NO_COLOR`` or when *stream* is not a TTY."""
    if os.environ.get("NO_COLOR"):
        return False
    target = stream if stream is not None else sys.stderr
    isatty = getattr(target, "isatty", None)
    return bool(isatty and isatty())


def _plain_formatter() -> logging.Formatter:
    formatter = logging.Formatter(_PLAIN_FORMAT, datefmt=_TIMESTAMP_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def _stderr_handler(color: bool) -> logging.Handler:
    try:
        from rich.console import Console
        from rich.logging import RichHandler
    except ModuleNotFoundError:
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_plain_formatter())
        return handler

    return RichHandler(
        console=Console(stderr=True, no_color=not color, highlight=False),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
        log_time_format="[%X]",
    )


def _file_handler(path: str) -> logging.Handler:
    log_path = Path(path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ValidationError(f"Cannot create log directory: {log_path.parent}") from exc
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(_plain_formatter())
    return handler


def configure_logging(
    level: str = "info",
    *,
    color: bool | None = None,
    log_file: str | None = None,
) -> logging.Logger:
    """(Re)configure the framework logger and return it.

    Parameters
    ----------
    level:
        One of ``debug``, ``info``, ``warn``, ``error`` or ``none``.
    color:
        Force colour on or off; ``None`` auto-detects via
        :func:`detect_color_support`.
    log_file:
        Optional path that additionally receives every record.

    Raises
    ------
    ValidationError
        For an unknown level or an uncreatable log directory.
    """
    numeric_level = resolve_level(level)
    if color is None:
        color = detect_color_support()

    logger = get_logger()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(numeric_level)
    logger.propagate = False
    logger.addHandler(_stderr_handler(color))
    if log_file:
        logger.addHandler(_file_handler(log_file))
    return logger
