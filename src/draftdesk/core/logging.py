"""Centralized logging for DraftDesk.

Four verbosity levels:
- QUIET (0): Warnings + errors
- NORMAL (1): Info + warnings + errors
- VERBOSE (2): Detailed info (session lifecycle, dispatch decisions)
- DEBUG (3): Everything including rejected events and timer wake-ups

Usage:
    from draftdesk.core.logging import get_logger, set_verbosity

    logger = get_logger(__name__)
    set_verbosity(2)  # VERBOSE

    logger.verbose("Session opened")
    logger.warning("Prompt could not be disabled")

Engine components take a logger in their constructor and only fall back to
get_logger() when none is given, so tests can pass a recording fake.
"""

from __future__ import annotations

import sys
from enum import IntEnum
from typing import Protocol, TextIO

from draftdesk.core.log_bus import LogRecord, get_log_bus


class VerbosityLevel(IntEnum):
    """Verbosity levels for DraftDesk."""

    QUIET = 0  # Warnings + errors
    NORMAL = 1  # Info + warnings + errors
    VERBOSE = 2  # Detailed info
    DEBUG = 3  # Everything


LEVEL_NAMES: dict[str, VerbosityLevel] = {
    "quiet": VerbosityLevel.QUIET,
    "normal": VerbosityLevel.NORMAL,
    "verbose": VerbosityLevel.VERBOSE,
    "debug": VerbosityLevel.DEBUG,
}

_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL
_USE_COLORS: bool = True
_STREAM: TextIO | None = None


class Logger(Protocol):
    """What engine components need from a logger."""

    def debug(self, message: str) -> None: ...

    def verbose(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


def set_verbosity(level: int | str | VerbosityLevel) -> None:
    """Set global verbosity level.

    Args:
        level: 0-3, a level name ("quiet" .. "debug") or VerbosityLevel
    """
    global _VERBOSITY

    if isinstance(level, str):
        try:
            level = LEVEL_NAMES[level.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown verbosity level: {level!r}") from None
    elif isinstance(level, int):
        level = VerbosityLevel(level)

    _VERBOSITY = level


def get_verbosity() -> VerbosityLevel:
    return _VERBOSITY


def set_colors(enabled: bool) -> None:
    """Enable or disable ANSI colours on console output."""
    global _USE_COLORS
    _USE_COLORS = enabled


def set_stream(stream: TextIO | None) -> None:
    """Redirect console output (None restores stdout/stderr)."""
    global _STREAM
    _STREAM = stream


class DraftDeskLogger:
    """Logger with verbosity filtering, console output and LogBus publishing."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "VERBOSE": "\033[34m",  # Blue
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "RESET": "\033[0m",
    }

    def __init__(self, name: str):
        self.name = name

    def _format(self, level_name: str, message: str, stream: TextIO) -> str:
        tag = f"[{level_name.lower()}]"
        if _USE_COLORS and getattr(stream, "isatty", lambda: False)():
            return f"{self.COLORS.get(level_name, '')}{tag}{self.COLORS['RESET']} {message}"
        return f"{tag} {message}"

    def _log(self, level: VerbosityLevel, level_name: str, message: str) -> None:
        if level > _VERBOSITY:
            return

        get_log_bus().publish(
            LogRecord(
                level_name=level_name,
                plain=f"[{level_name.lower()}] {message}",
                logger_name=self.name,
            )
        )

        stream = _STREAM
        if stream is None:
            stream = sys.stderr if level_name in ("WARNING", "ERROR") else sys.stdout
        print(self._format(level_name, message, stream), file=stream)

    def debug(self, message: str) -> None:
        self._log(VerbosityLevel.DEBUG, "DEBUG", message)

    def verbose(self, message: str) -> None:
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message)

    def info(self, message: str) -> None:
        self._log(VerbosityLevel.NORMAL, "INFO", message)

    def warning(self, message: str) -> None:
        self._log(VerbosityLevel.QUIET, "WARNING", message)

    def error(self, message: str) -> None:
        # Errors are emitted regardless of verbosity.
        self._log(VerbosityLevel.QUIET, "ERROR", message)


_LOGGERS: dict[str, DraftDeskLogger] = {}


def get_logger(name: str = "draftdesk") -> DraftDeskLogger:
    """Get (or create) the logger registered under name."""
    if name not in _LOGGERS:
        _LOGGERS[name] = DraftDeskLogger(name)
    return _LOGGERS[name]
