"""
Path helpers for module probing and output placement.

All functions take and return ``pathlib.Path`` objects so the bundler
behaves the same way on every platform.

Examples:
    >>> from luabundle.utils.path_utils import derive_output_path
    >>> derive_output_path(Path("src/main.lua"))
    PosixPath('src/main.min.lua')
"""

from __future__ import annotations

import os
import platform as platform_module
from pathlib import Path
from typing import Union

# Type alias for path-like objects
PathLike = Union[str, Path]

# Source extensions stripped when deriving the default output name
LUA_SOURCE_EXTENSIONS = (".lua", ".luau")
BUNDLED_SUFFIX = ".min.lua"

_PLATFORM_CACHE: str | None = None


def normalize_path(path: PathLike) -> Path:
    """
    Convert a string or Path to an absolute Path with ``~`` expanded.

    Args:
        path: A file system path as string or Path object.

    Returns:
        Normalized absolute Path object.

    Raises:
        ValueError: If path is empty or None.
    """
    if path is None or (isinstance(path, str) and not path.strip()):
        raise ValueError("Path cannot be None or empty")

    return Path(path).expanduser().resolve()


def ensure_directory(path: Path) -> Path:
    """
    Create directory if it doesn't exist, return Path.

    Raises:
        OSError: If directory creation fails.
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_readable(path: Path) -> bool:
    """Check that ``path`` exists and has read permission."""
    return path.exists() and os.access(path, os.R_OK)


def is_readable_file(path: Path) -> bool:
    """
    Check that ``path`` is a regular file the current user can read.

    Directories named like a module (``util/`` next to ``util.lua``) are
    rejected so they never shadow the real source file.
    """
    try:
        return path.is_file() and os.access(path, os.R_OK)
    except OSError:
        return False


def is_writable(path: Path) -> bool:
    """Check that ``path`` exists and has write permission."""
    return path.exists() and os.access(path, os.W_OK)


def derive_output_path(entry: PathLike) -> Path:
    """
    Build the default bundle path for an entry file.

    A trailing ``.lua``/``.luau`` is dropped and ``.min.lua`` appended, so
    ``game/main.lua`` becomes ``game/main.min.lua`` and ``main`` becomes
    ``main.min.lua``.

    Examples:
        >>> derive_output_path("app.luau")
        PosixPath('app.min.lua')
    """
    entry_path = Path(entry)
    name = entry_path.name
    for ext in LUA_SOURCE_EXTENSIONS:
        if name.lower().endswith(ext) and len(name) > len(ext):
            name = name[: -len(ext)]
            break
    return entry_path.with_name(name + BUNDLED_SUFFIX)


def get_platform() -> str:
    """
    Return "windows", "macos", "linux" or the lowercased system name.

    Note:
        Result is cached for the lifetime of the process.
    """
    global _PLATFORM_CACHE
    if _PLATFORM_CACHE is not None:
        return _PLATFORM_CACHE

    system = platform_module.system()
    if system == "Windows":
        _PLATFORM_CACHE = "windows"
    elif system == "Darwin":
        _PLATFORM_CACHE = "macos"
    elif system == "Linux":
        _PLATFORM_CACHE = "linux"
    else:
        _PLATFORM_CACHE = system.lower()

    return _PLATFORM_CACHE
