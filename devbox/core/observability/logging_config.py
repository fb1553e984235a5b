"""
Logging setup for the devbox CLI.

stdout carries the live step progress and the summary block, so log
records always go to stderr. An optional log file keeps a fuller trace
of a provisioning run at its own level.

Console level: ``-v/-q/--debug`` flag > ``DEVBOX_LOG_LEVEL`` > WARNING.
File output: ``DEVBOX_LOG_FILE`` at ``DEVBOX_LOG_FILE_LEVEL`` (defaults
to the console level).
"""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV = "DEVBOX_LOG_LEVEL"
FILE_ENV = "DEVBOX_LOG_FILE"
FILE_LEVEL_ENV = "DEVBOX_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s"

# (most verbose level the format applies to, format, datefmt), checked in order
_CONSOLE_FORMATS = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)

_FILE_FORMAT = (_DETAILED, "%Y-%m-%d %H:%M:%S")


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, falling back to the env var."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LEVEL_ENV, "WARNING")


def _level_number(name: str | None, default: int = logging.WARNING) -> int:
    number = logging.getLevelName(name.upper()) if name else None
    return number if isinstance(number, int) else default


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next((f, d) for limit, f, d in _CONSOLE_FORMATS if level <= limit)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(os.path.expanduser(path), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(*_FILE_FORMAT))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with devbox's.

    Args:
        level: Console level name. Unknown names mean WARNING.
        log_file: Optional log file path (``~`` is expanded).
        log_file_level: Level for the file; defaults to ``level``.
    """
    console_level = _level_number(level)
    handlers = [_console_handler(console_level)]
    if log_file:
        handlers.append(_file_handler(log_file, _level_number(log_file_level, console_level)))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    # root passes everything the most verbose handler wants
    root.setLevel(min(h.level for h in handlers))

    # a closed stderr must not turn log calls into tracebacks mid-run
    logging.raiseExceptions = False


def setup_from_env(level: str) -> None:
    """``setup_logging`` with the file settings taken from the environment."""
    setup_logging(
        level=level,
        log_file=os.environ.get(FILE_ENV),
        log_file_level=os.environ.get(FILE_LEVEL_ENV),
    )
