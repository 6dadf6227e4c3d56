"""Atomic writing of bundled output.

The bundle is written to a temporary file in the destination directory,
flushed and fsynced, then moved over the target. A failed write leaves the
previous file (if any) untouched and no partial output behind.

Example::

    writer = OutputWriter()
    result = writer.write_file(Path("build/main.min.lua"), code)
    if not result.success:
        print(result.error)
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from luabundle.utils.logger import get_logger
from luabundle.utils.path_utils import ensure_directory, is_writable, normalize_path


@dataclass
class WriteResult:
    """Result of a single file write.

    Attributes:
        success: Whether the write completed.
        output_path: Final path written, or ``None`` on failure.
        original_path: The path as requested.
        overwritten: ``True`` when an existing file was replaced.
        error: Human-readable error message if the write failed.
    """

    success: bool
    output_path: Path | None
    original_path: Path
    overwritten: bool = False
    error: str | None = None


@dataclass
class WriteMetadata:
    """Counters for all writes made by one ``OutputWriter``."""

    total_writes: int = 0
    successful_writes: int = 0
    failed_writes: int = 0
    written_files: list[Path] = field(default_factory=list)


class OutputWriter:
    """File writer using the temp-file + rename pattern.

    Existing files are always overwritten; the bundler has a single output.
    """

    def __init__(self) -> None:
        self._logger = get_logger("luabundle.core.output_writer")
        self._metadata = WriteMetadata()

    def _validate_write_permissions(self, output_path: Path) -> str | None:
        if output_path.is_dir():
            return f"Output path is a directory: {output_path}"
        if output_path.exists():
            if not is_writable(output_path):
                return f"File is not writable: {output_path}"
        else:
            parent = output_path.parent
            if parent.exists() and not is_writable(parent):
                return f"Parent directory is not writable: {parent}"
        return None

    def _write_atomic(self, output_path: Path, content: str) -> None:
        """Write through a temporary file in the target directory.

        Raises:
            OSError: On file-system errors, after the temp file is removed.
        """
        ensure_directory(output_path.parent)
        temp_path: str | None = None

        try:
            fd = tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                delete=False,
                dir=str(output_path.parent),
                prefix=f".{output_path.name}.",
                suffix=".tmp",
            )
            temp_path = fd.name
            with fd:
                fd.write(content)
                fd.flush()
                os.fsync(fd.fileno())

            shutil.move(temp_path, str(output_path))
            self._logger.debug(f"Atomic write: renamed {temp_path} -> {output_path}")

        except (OSError, UnicodeEncodeError) as exc:
            self._logger.error(f"Atomic write failed for {output_path}: {exc}")
            if temp_path is not None and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError:
                    self._logger.error(f"Failed to clean up temp file: {temp_path}")
            raise

    def write_file(self, output_path: Path, content: str) -> WriteResult:
        """Write ``content`` to ``output_path`` atomically.

        Returns:
            A :class:`WriteResult` describing the outcome; errors are
            reported there rather than raised.
        """
        self._metadata.total_writes += 1
        original_path = Path(output_path)

        try:
            output_path = normalize_path(output_path)
        except ValueError as exc:
            return self._fail(original_path, f"Invalid output path: {exc}")

        perm_error = self._validate_write_permissions(output_path)
        if perm_error is not None:
            self._logger.warning(perm_error)
            return self._fail(original_path, perm_error)

        overwritten = output_path.exists()
        try:
            self._write_atomic(output_path, content)
        except UnicodeEncodeError as exc:
            return self._fail(original_path, f"Cannot encode output as UTF-8: {exc}")
        except OSError as exc:
            return self._fail(original_path, f"Failed to write {output_path}: {exc}")

        self._metadata.successful_writes += 1
        self._metadata.written_files.append(output_path)
        self._logger.info(
            f"Wrote {output_path} ({len(content)} characters, overwritten={overwritten})"
        )
        return WriteResult(
            success=True,
            output_path=output_path,
            original_path=original_path,
            overwritten=overwritten,
        )

    def _fail(self, original_path: Path, message: str) -> WriteResult:
        self._metadata.failed_writes += 1
        return WriteResult(
            success=False,
            output_path=None,
            original_path=original_path,
            error=message,
        )

    def get_metadata(self) -> WriteMetadata:
        return self._metadata

    def get_written_files(self) -> list[Path]:
        return list(self._metadata.written_files)
