"""Logging configuration for shellwatch.

Uses Python's standard logging module with support for:
- File logging via config or SHELLWATCH_LOG environment variable
- Verbosity levels: error(0), warning(1), info(2), verbose(3), trace(4)
- Stderr fallback when no log file is configured
- Structured format with timestamps and level names
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shellwatch.config.schema import LoggingConfig

# Custom log levels
TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("shellwatch")

_initialized = False

_LEVEL_MAP = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# --verbose=N to log level (0=errors only, 4=everything)
_VERBOSITY_MAP = {
    0: logging.ERROR,
    1: logging.WARNING,
    2: logging.INFO,
    3: VERBOSE,
    4: TRACE,
}


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Pick the effective log level: verbose (int) wins over level (str)."""
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY_MAP.get(config.verbose, TRACE)
    if config.level:
        return _LEVEL_MAP.get(config.level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Initialize logging based on configuration.

    Call this once at startup. Subsequent calls are no-ops.

    Args:
        config: Optional LoggingConfig with level, verbose, and file settings.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    log_level = resolve_level(config)
    logger.setLevel(log_level)

    formatter = _LowercaseLevelFormatter(
        "%(asctime)s %(levelname)s: %(message)s", datefmt="%H:%M:%S"
    )

    log_path = config.file if config and config.file else os.environ.get("SHELLWATCH_LOG")

    if log_path:
        log_path = os.path.expanduser(log_path)
        try:
            file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[shellwatch] Failed to open log file: {e}", file=sys.stderr)
                _add_stderr_handler(formatter, log_level)
    elif sys.stderr.isatty():
        # Only log to stderr if it's a real console, not a pipe owned by the agent
        _add_stderr_handler(formatter, log_level)


def reset_logging() -> None:
    """Remove installed handlers so setup_logging() can run again."""
    global _initialized
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    _initialized = False


def _add_stderr_handler(formatter: logging.Formatter, level: int = logging.DEBUG) -> None:
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Optional name for a child logger (e.g., "registry", "tty").
              If None, returns the root shellwatch logger.

    Returns:
        A configured logger instance.
    """
    if name:
        return logger.getChild(name)
    return logger
