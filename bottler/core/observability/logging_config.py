"""
Logging setup for the ``bottler`` command.

``main.py`` calls ``setup_logging()`` once, before the worker pool
starts; every module logs through ``logging.getLogger(__name__)``.

Console output goes to stderr, interleaved with the progress renderer,
so stdout carries nothing but command output (``--json`` included).
At the default WARNING level a line is just the message, which keeps
retry warnings readable next to progress lines.  At INFO and DEBUG each
line names the thread it came from: fetch workers are ``fetch_0``,
``fetch_1``, ... so lines of concurrent downloads can be told apart.

Records from loggers outside the ``bottler`` package reach the console
only at WARNING or above, whatever the level.  The optional log file
gets everything at its own level.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path

PACKAGE_LOGGER = "bottler"

LEVEL_ENV = "BOTTLER_LOG_LEVEL"
FILE_ENV = "BOTTLER_LOG_FILE"
FILE_LEVEL_ENV = "BOTTLER_LOG_FILE_LEVEL"

# threshold → (format, datefmt); the first threshold >= level wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(threadName)s] %(message)s", "%H:%M:%S"),
)
_CONSOLE_FALLBACK = ("%(message)s", None)

_FILE_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# handlers added by the last setup_logging() call
_installed: list[logging.Handler] = []


class PackageFilter(logging.Filter):
    """Pass every ``bottler.*`` record; others only from *floor* up."""

    def __init__(self, floor: int = logging.WARNING) -> None:
        super().__init__()
        self.floor = floor

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
            return True
        return record.levelno >= self.floor


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env: Mapping[str, str] | None = None,
) -> str:
    """Console level from the global CLI flags, then ``BOTTLER_LOG_LEVEL``."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return (env or {}).get(LEVEL_ENV) or "WARNING"


def console_format(level: int) -> tuple[str, str | None]:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return fmt, datefmt
    return _CONSOLE_FALLBACK


def setup_logging(
    level: str = "WARNING",
    log_file: str | Path | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler and, optionally, a file handler.

    Replaces whatever handlers the root logger had, so calling it again
    (as each CLI invocation in one process does) never duplicates lines.

    Args:
        level: Console level name; unknown names mean WARNING.
        log_file: Append full-detail records to this file.  Its parent
            directory is created.
        log_file_level: Level for the file, defaulting to *level*.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    fmt, datefmt = console_format(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    console.addFilter(PackageFilter())

    root = logging.getLogger()
    root.handlers.clear()
    while _installed:
        _installed.pop().close()

    root.addHandler(console)
    _installed.append(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(fh)
        _installed.append(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
