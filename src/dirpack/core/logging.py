"""Centralized logging system for dirpack.

Four verbosity levels gate what is printed:
- QUIET (0): warnings + errors
- NORMAL (1): pack/unpack summaries
- VERBOSE (2): operation start/failure details
- DEBUG (3): every entry decision (added, excluded, skipped)

Usage:
    from dirpack.core.logging import get_logger, set_verbosity

    log = get_logger(__name__)
    set_verbosity(VerbosityLevel.DEBUG)
    log.debug("exclude entry='a.tmp' pattern='*.tmp'")

Records go to stderr (stdout is reserved for command output). Embedders that
want the records themselves register a listener:

    add_log_listener(records.append, level="WARNING")
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum

from dirpack.core.config import LoggingPolicy


class VerbosityLevel(IntEnum):
    """Verbosity levels for dirpack."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


@dataclass(frozen=True)
class LogRecord:
    """One emitted line, without color codes."""

    level_name: str  # DEBUG | VERBOSE | INFO | WARNING | ERROR
    plain: str
    logger_name: str


LogListener = Callable[[LogRecord], None]

_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL
_USE_COLORS: bool = True
# (level filter or None for all levels, callback)
_LISTENERS: list[tuple[str | None, LogListener]] = []


def set_verbosity(level: int | VerbosityLevel) -> None:
    global _VERBOSITY
    _VERBOSITY = VerbosityLevel(level)


def get_verbosity() -> VerbosityLevel:
    return _VERBOSITY


def set_colors(enabled: bool) -> None:
    """Enable or disable ANSI colors (only ever used when stderr is a TTY)."""
    global _USE_COLORS
    _USE_COLORS = enabled


def apply_logging_policy(policy: LoggingPolicy) -> None:
    """Set the global verbosity from a resolved LoggingPolicy."""
    if policy.emit_debug:
        set_verbosity(VerbosityLevel.DEBUG)
    elif policy.level_name == "verbose":
        set_verbosity(VerbosityLevel.VERBOSE)
    elif policy.emit_info:
        set_verbosity(VerbosityLevel.NORMAL)
    else:
        set_verbosity(VerbosityLevel.QUIET)


def add_log_listener(listener: LogListener, *, level: str | None = None) -> None:
    """Call listener for every printed record (or only those of one level)."""
    _LISTENERS.append((level, listener))


def remove_log_listener(listener: LogListener, *, level: str | None = None) -> None:
    with contextlib.suppress(ValueError):
        _LISTENERS.remove((level, listener))


def clear_log_listeners() -> None:
    _LISTENERS.clear()


def _notify(record: LogRecord) -> None:
    for level, listener in list(_LISTENERS):
        if level is not None and level != record.level_name:
            continue
        try:
            listener(record)
        except Exception:
            # A failing listener must not break the operation being logged,
            # and reporting it through a DirpackLogger would recurse.
            with contextlib.suppress(Exception):
                sys.stderr.write("dirpack log listener raised; suppressed.\n")
                sys.stderr.write(traceback.format_exc())


class DirpackLogger:
    """Logger for dirpack with verbosity support."""

    COLORS = {
        "DEBUG": "\033[36m",
        "VERBOSE": "\033[34m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    RESET = "\033[0m"

    def __init__(self, name: str):
        self.name = name

    def _log(self, level: VerbosityLevel, level_name: str, message: str) -> None:
        if level > _VERBOSITY:
            return

        tag = f"[{level_name.lower()}]"
        plain = f"{tag} {message}"
        _notify(LogRecord(level_name=level_name, plain=plain, logger_name=self.name))

        if _USE_COLORS and sys.stderr.isatty():
            print(f"{self.COLORS[level_name]}{tag}{self.RESET} {message}", file=sys.stderr)
        else:
            print(plain, file=sys.stderr)

    def debug(self, message: str) -> None:
        self._log(VerbosityLevel.DEBUG, "DEBUG", message)

    def verbose(self, message: str) -> None:
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message)

    def info(self, message: str) -> None:
        self._log(VerbosityLevel.NORMAL, "INFO", message)

    def warning(self, message: str) -> None:
        self._log(VerbosityLevel.QUIET, "WARNING", message)

    def error(self, message: str) -> None:
        self._log(VerbosityLevel.QUIET, "ERROR", message)


_LOGGERS: dict[str, DirpackLogger] = {}


def get_logger(name: str = __name__) -> DirpackLogger:
    """Return the cached logger for name (usually the module's __name__)."""
    if name not in _LOGGERS:
        _LOGGERS[name] = DirpackLogger(name)
    return _LOGGERS[name]
