"""
Utility functions for gopack.

Includes path normalization and the same-directory temp-file + rename helpers
used for every file that must never be observed half-written.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable, Union

from .config import DIR_MODE, FILE_MODE

Content = Union[bytes, Callable[[BinaryIO], None]]


def normalize_path(path: str) -> str:
    """Normalize a path for consistent cross-platform comparisons.

    Args:
        path: Path string that may contain platform-specific separators.

    Returns:
        Normalized path using forward slashes.
    """
    return path.replace("\\", "/")


def ensure_dir(path: Path, mode: int = DIR_MODE) -> Path:
    """Create `path` and any missing parents.

    Args:
        path: Directory to create.
        mode: Permission bits for newly created directories.

    Returns:
        The directory path.
    """
    path.mkdir(mode=mode, parents=True, exist_ok=True)
    return path


def write_file(path: Path, data: bytes, mode: int = FILE_MODE) -> None:
    """Truncate-write `data` to `path` and apply `mode`."""
    with open(path, "wb") as f:
        f.write(data)
    os.chmod(path, mode)


def _remove_quietly(path: Path) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def stage_temp_file(directory: Path, base_name: str, content: Content, mode: int = FILE_MODE) -> Path:
    """Write `content` to a new temporary file inside `directory`.

    The temp file lives next to its eventual target so the final rename stays on
    one filesystem. On any failure the temp file is removed before the error
    propagates.

    Args:
        directory: Directory that will contain the final file.
        base_name: Final file name, used as the temp file prefix.
        content: Bytes to write, or a callable that writes into the open binary file.
        mode: Permission bits applied before the file is closed.

    Returns:
        Path to the fully written, closed temporary file.

    Raises:
        OSError: If the temp file cannot be created, written, chmod-ed or closed.
    """
    fd, tmp_name = tempfile.mkstemp(dir=str(directory), prefix=f"{base_name}.tmp-")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            if callable(content):
                content(f)
            else:
                f.write(content)
            f.flush()
            os.fchmod(f.fileno(), mode)
    except BaseException:
        _remove_quietly(tmp_path)
        raise
    return tmp_path


def replace_file(tmp_path: Path, target: Path) -> None:
    """Atomically rename a staged temp file over `target`.

    Raises:
        OSError: If the rename fails; the temp file is removed first.
    """
    try:
        os.replace(tmp_path, target)
    except BaseException:
        _remove_quietly(tmp_path)
        raise


def write_file_atomic(target: Path, content: Content, mode: int = FILE_MODE) -> None:
    """Write `target` so readers only ever see the old or the complete new file.

    Raises:
        OSError: If staging or renaming fails.
    """
    tmp_path = stage_temp_file(target.parent, target.name, content, mode)
    replace_file(tmp_path, target)
