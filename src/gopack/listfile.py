"""
Version list (`@v/list`) maintenance.

The list is the per-module catalog of published versions: one version per line,
no duplicates, ascending by semantic-version precedence. Each update reads the
old file, drops anything that is not a valid version, merges in the new
version, and replaces the file wholesale via temp file + rename so readers never
see a partial list.

No locking is done: two concurrent publishers of the same module race, and the
last rename wins.
"""

from __future__ import annotations

from pathlib import Path

from . import semver
from .config import FILE_MODE, LIST_FILE_NAME, ListUpdate
from .errors import ListReadError, ListRenameError, ListScanError, ListWriteError
from .utils import replace_file, stage_temp_file


def read_versions(list_path: Path) -> tuple[list[str], list[str]]:
    """Read an existing version list.

    Blank lines are skipped silently. Lines that are not valid semantic
    versions are dropped and returned separately so callers can report them.

    Args:
        list_path: Path to the `list` file.

    Returns:
        A tuple `(versions, dropped)` in file order. Both are empty if the file
        does not exist.

    Raises:
        ListReadError: If the file exists but cannot be opened.
        ListScanError: If reading fails part-way through.
    """
    try:
        f = open(list_path, "rb")
    except FileNotFoundError:
        return [], []
    except OSError as e:
        raise ListReadError(f"open {list_path}: {e}") from e

    versions: list[str] = []
    dropped: list[str] = []
    with f:
        try:
            for raw in f:
                line = raw.decode("utf-8", errors="replace").rstrip("\n").rstrip("\r")
                if not line:
                    continue
                if semver.is_valid(line):
                    versions.append(line)
                else:
                    dropped.append(line)
        except OSError as e:
            raise ListScanError(f"scan {list_path}: {e}") from e

    return versions, dropped


def merge_versions(existing: list[str], new_version: str) -> tuple[list[str], bool]:
    """Insert `new_version` if absent and return the sorted, deduplicated list.

    Returns:
        A tuple `(versions, added)`.
    """
    seen: set[str] = set()
    merged: list[str] = []
    for v in existing:
        if v not in seen:
            seen.add(v)
            merged.append(v)

    added = new_version not in seen
    if added:
        merged.append(new_version)

    return semver.sort_versions(merged), added


def render_list(versions: list[str]) -> bytes:
    """Serialize versions one per line, trailing newline included."""
    return "".join(f"{v}\n" for v in versions).encode("utf-8")


def update_list_file(at_v_dir: Path, new_version: str) -> ListUpdate:
    """Add `new_version` to `<at_v_dir>/list`, rewriting the file atomically.

    Args:
        at_v_dir: The module's `@v` directory.
        new_version: Version being published; must already be validated.

    Returns:
        A `ListUpdate` describing the new contents.

    Raises:
        ListReadError: If the old list cannot be opened.
        ListScanError: If reading the old list fails mid-way.
        ListWriteError: If the new list cannot be staged.
        ListRenameError: If the staged list cannot be renamed into place.
    """
    list_path = at_v_dir / LIST_FILE_NAME

    existing, dropped = read_versions(list_path)
    versions, added = merge_versions(existing, new_version)

    try:
        tmp_path = stage_temp_file(at_v_dir, LIST_FILE_NAME, render_list(versions), FILE_MODE)
    except OSError as e:
        raise ListWriteError(f"write {list_path}: {e}") from e

    try:
        replace_file(tmp_path, list_path)
    except OSError as e:
        raise ListRenameError(f"rename {tmp_path} -> {list_path}: {e}") from e

    return ListUpdate(versions=versions, dropped=dropped, added=added)
