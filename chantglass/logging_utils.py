"""Centralized logging configuration for ChantGlass.

Provides helpers to set up console and rotating file handlers with a
consistent format. Intended to be called from the CLI (cli.py) and early in
GUI startup.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from enum import Enum
from pathlib import Path
from typing import Optional


DEFAULT_LOG_FILENAME = "chantglass.log"


class LogMode(str, Enum):
    """Logging presets that affect verbosity targets."""

    QUIET = "quiet"
    NORMAL = "normal"
    PERF = "perf"


_LOG_MODE: LogMode = LogMode.NORMAL


def get_default_log_dir() -> Path:
    """Return a suitable per-user log directory.

    On Windows, prefer %LOCALAPPDATA%/ChantGlass. Else use ~/.chantglass.
    Falls back to cwd if neither is writable.
    """
    local_appdata = os.environ.get("LOCALAPPDATA")
    if local_appdata:
        p = Path(local_appdata) / "ChantGlass"
        try:
            p.mkdir(parents=True, exist_ok=True)
            return p
        except OSError:
            pass

    p = Path.home() / ".chantglass"
    try:
        p.mkdir(parents=True, exist_ok=True)
        return p
    except OSError:
        return Path.cwd()


def get_default_log_path() -> Path:
    """Default full path to the log file."""
    return get_default_log_dir() / DEFAULT_LOG_FILENAME


def _parse_log_mode(mode: LogMode | str | None) -> LogMode:
    if mode is None:
        return LogMode.NORMAL
    if isinstance(mode, LogMode):
        return mode
    try:
        return LogMode(mode.lower())
    except ValueError:
        return LogMode.NORMAL


def set_log_mode(mode: LogMode | str | None) -> LogMode:
    """Persist the active log mode for other modules to query later."""

    global _LOG_MODE
    _LOG_MODE = _parse_log_mode(mode)
    return _LOG_MODE


def get_log_mode() -> LogMode:
    return _LOG_MODE


PLAIN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
KEY_VALUE_FORMAT = "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"
LOG_MAX_BYTES = 1_000_000
LOG_BACKUPS = 3


def _resolve_levels(level: str | int, mode: LogMode) -> tuple[int, int]:
    """Return (logger/file level, console level) for a preset."""
    if isinstance(level, str):
        resolved = getattr(logging, level.upper(), logging.INFO)
    else:
        resolved = int(level)
    if mode is LogMode.PERF:
        resolved = min(resolved, logging.DEBUG)
    console = max(logging.WARNING, resolved) if mode is LogMode.QUIET else resolved
    return resolved, console


def _file_handler(log_file: Optional[str | Path], formatter: logging.Formatter, level: int):
    """Rotating file handler, or None when the log location is not writable."""
    path = Path(log_file) if log_file else get_default_log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        )
    except OSError:
        return None
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _is_console(handler: logging.Handler) -> bool:
    # FileHandler subclasses StreamHandler
    return isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler)


def setup_logging(
    *,
    level: str | int = "INFO",
    log_file: Optional[str | Path] = None,
    json_format: bool = False,
    logger_name: Optional[str] = None,
    log_mode: LogMode | str | None = None,
    add_console: bool = True,
) -> logging.Logger:
    """Configure logging for the application.

    - level: str or int (DEBUG/INFO/WARNING/ERROR)
    - log_file: path for rotating file handler (default: per-user dir)
    - json_format: if True, use a key=value single-line format
    - logger_name: root logger by default; can scope to a sub-logger
    - log_mode: optional preset (quiet/normal/perf) that adjusts verbosity targets
    - add_console: add a console StreamHandler in addition to file handler

    A second call on an already configured logger only adjusts levels.
    """
    mode = set_log_mode(log_mode) if log_mode is not None else get_log_mode()
    file_level, console_level = _resolve_levels(level, mode)

    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()
    logger.setLevel(file_level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(console_level if _is_console(handler) else file_level)
        return logger

    formatter = logging.Formatter(
        fmt=KEY_VALUE_FORMAT if json_format else PLAIN_FORMAT, datefmt="%H:%M:%S"
    )
    handler = _file_handler(log_file, formatter, file_level)
    if handler is not None:
        logger.addHandler(handler)
    if add_console:
        console = logging.StreamHandler()
        console.setLevel(console_level)
        console.setFormatter(formatter)
        logger.addHandler(console)
    return logger
