"""
Logging setup shared by the bundler, the mangler and both front-ends.

Loggers live under the ``luabundle`` hierarchy. The console gets a short
``LEVEL: message`` format, while an optional rotating log file records the
detailed format with timestamps and source locations.

Examples:
    >>> from luabundle.utils.logger import setup_logger, get_logger
    >>> logger = setup_logger("luabundle", level="DEBUG", log_file=Path("logs/luabundle.log"))
    >>> get_logger("luabundle.core.bundler").info("Resolved 3 modules")
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from .path_utils import ensure_directory

# Valid log levels
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
SIMPLE_FORMAT = "%(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotation settings for file logs
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _check_level(level: str) -> str:
    upper = level.upper()
    if upper not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of {VALID_LOG_LEVELS}")
    return upper


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Path | None = None
) -> logging.Logger:
    """
    Configure and return a logger with console and optional file output.

    Calling this repeatedly for the same name does not stack handlers.

    Args:
        name: Logger name, usually "luabundle" or a dotted child of it.
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file. Enables rotating file logging.

    Returns:
        Configured logger instance.

    Raises:
        ValueError: If level is not a valid log level.
    """
    upper = _check_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, upper))

    has_console_handler = any(
        isinstance(h, logging.StreamHandler)
        and not isinstance(h, logging.handlers.RotatingFileHandler)
        for h in logger.handlers
    )
    has_file_handler = any(
        isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers
    )

    if not has_console_handler:
        add_console_handler(logger, upper)

    if log_file is not None and not has_file_handler:
        add_file_handler(logger, log_file, level="DEBUG")

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Retrieve a logger, creating a default console logger only when nothing
    up the hierarchy has handlers yet.

    Args:
        name: Logger name.

    Returns:
        Logger instance.

    Note:
        Module loggers such as "luabundle.core.bundler" normally propagate to
        the "luabundle" logger configured by the CLI or GUI entry point.
    """
    logger = logging.getLogger(name)

    if logger.hasHandlers():
        return logger

    parent_name = name.rsplit(".", 1)[0] if "." in name else ""
    while parent_name:
        if logging.getLogger(parent_name).handlers:
            return logger
        parent_name = parent_name.rsplit(".", 1)[0] if "." in parent_name else ""

    if logging.getLogger().handlers:
        return logger

    return setup_logger(name)


def set_log_level(logger: logging.Logger, level: str) -> None:
    """
    Change a logger's level at runtime.

    Raises:
        ValueError: If level is not valid.
    """
    logger.setLevel(getattr(logging, _check_level(level)))


def add_file_handler(
    logger: logging.Logger,
    log_file: Path,
    level: str = "DEBUG"
) -> None:
    """
    Attach a rotating file handler (10MB, 5 backups) using the detailed format.

    The parent directory of ``log_file`` is created when missing.

    Raises:
        ValueError: If level is not valid.
        OSError: If the log directory cannot be created.
    """
    upper = _check_level(level)

    ensure_directory(log_file.parent)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    file_handler.setLevel(getattr(logging, upper))
    file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))

    logger.addHandler(file_handler)


def add_console_handler(logger: logging.Logger, level: str = "INFO") -> None:
    """
    Attach a stderr handler using the simple format.

    Raises:
        ValueError: If level is not valid.
    """
    upper = _check_level(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, upper))
    console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))

    logger.addHandler(console_handler)


def get_log_directory() -> Path:
    """
    Return the default directory for GUI log files (not created here).

    Examples:
        >>> get_log_directory()
        PosixPath('logs')
    """
    return Path("logs")
