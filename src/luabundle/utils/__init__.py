"""
Utility modules for path handling and logging.

This package provides:
- Path helpers used by module resolution and output writing
- Logging infrastructure with console and rotating file output

Examples:
    >>> from luabundle.utils import setup_logger, derive_output_path
    >>> logger = setup_logger("luabundle")
    >>> derive_output_path("main.lua")
    PosixPath('main.min.lua')
"""

from .path_utils import (
    PathLike,
    normalize_path,
    ensure_directory,
    is_readable,
    is_readable_file,
    is_writable,
    derive_output_path,
    get_platform,
)

from .logger import (
    setup_logger,
    get_logger,
    set_log_level,
    add_file_handler,
    add_console_handler,
    get_log_directory,
    VALID_LOG_LEVELS,
)

__all__ = [
    "PathLike",
    "normalize_path",
    "ensure_directory",
    "is_readable",
    "is_readable_file",
    "is_writable",
    "derive_output_path",
    "get_platform",
    "setup_logger",
    "get_logger",
    "set_log_level",
    "add_file_handler",
    "add_console_handler",
    "get_log_directory",
    "VALID_LOG_LEVELS",
]
