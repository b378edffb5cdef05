"""
Module archive builder for gopack.

Selects the files that belong to a module version and writes them into a
reproducible zip: every entry lives under `<module>@<version>/`, entries are
sorted, and timestamps/permissions are fixed so identical trees always produce
identical bytes.
"""

from __future__ import annotations

import fnmatch
import os
import stat
import zipfile
from pathlib import Path
from typing import BinaryIO, Generator, Optional

import pathspec

from . import semver
from .config import (
    MAX_GO_MOD,
    MAX_LICENSE,
    MAX_ZIP_FILE,
    VCS_DIRS,
    ArchiveFile,
    ArchivePlan,
)
from .errors import ArchiveBuildError, InvalidIdentifier, InvalidVersion
from .escape import check_file_path, check_module_path, split_path_version
from .modfile import MANIFEST_NAME
from .utils import normalize_path, write_file_atomic

_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)  # earliest valid ZIP timestamp
_COMPRESS_LEVEL = 6


class GitIgnoreParser:
    """
    Parser for .gitignore files.

    Supports nested .gitignore files in subdirectories.
    """

    def __init__(self, root_path: Path):
        """
        Initialize the parser.

        Args:
            root_path: Root directory of the module
        """
        self.root_path = root_path.resolve()
        self._specs: dict[Path, pathspec.GitIgnoreSpec] = {}
        self._load_gitignores()

    def _load_gitignores(self) -> None:
        """Load all .gitignore files under the root."""
        for gitignore_path in sorted(self.root_path.rglob(".gitignore")):
            if any(part in VCS_DIRS for part in gitignore_path.relative_to(self.root_path).parts):
                continue
            self._load_gitignore_file(gitignore_path, gitignore_path.parent)

    def _load_gitignore_file(self, gitignore_path: Path, base_path: Path) -> None:
        """Load a single .gitignore file."""
        try:
            with open(gitignore_path, "r", encoding="utf-8", errors="replace") as f:
                patterns = f.read().splitlines()
        except OSError as e:
            raise ArchiveBuildError(f"read {gitignore_path}: {e}") from e

        patterns = [
            p.strip() for p in patterns
            if p.strip() and not p.strip().startswith("#")
        ]

        if patterns:
            self._specs[base_path] = pathspec.GitIgnoreSpec.from_lines(patterns)

    def is_ignored(self, file_path: Path) -> bool:
        """
        Check if a file is ignored by .gitignore.

        Args:
            file_path: Absolute path to the file

        Returns:
            True if the file should be ignored
        """
        # Most specific .gitignore first
        for base_path, spec in sorted(
            self._specs.items(),
            key=lambda x: len(x[0].parts),
            reverse=True
        ):
            try:
                rel_path = normalize_path(str(file_path.relative_to(base_path)))
            except ValueError:
                continue
            if spec.match_file(rel_path):
                return True

        return False


def is_vendored_package(rel_path: str) -> bool:
    """Report whether a file lives inside a vendored package.

    Files directly in the top-level `vendor/` directory (such as
    `vendor/modules.txt`) are kept; anything in a subdirectory of it is not.
    For a nested `vendor/` the slash search starts at a fixed offset from the
    beginning of the path rather than after the match, so
    `sub/vendor/modules.txt` is omitted too. Module checksums published by
    the Go toolchain depend on this offset.
    """
    if rel_path.startswith("vendor/"):
        rest = rel_path[len("vendor/"):]
    elif "/vendor/" in rel_path:
        rest = rel_path[len("/vendor/"):]
    else:
        return False
    return "/" in rest


def check_module_version(module_path: str, version: str) -> None:
    """Check that `version` may be published for `module_path`.

    A module path ending in `/vN` (or `.vN` for gopkg.in) only accepts
    `vN.x.y` versions. Any other path accepts `v0`/`v1` versions, or higher
    majors marked `+incompatible`. gopkg.in `-unstable` paths accept any
    version.

    Raises:
        ArchiveBuildError: If the pair is inconsistent.
    """
    try:
        check_module_path(module_path)
        if not semver.is_canonical(version):
            raise ArchiveBuildError(f"{module_path}@{version}: version is not canonical")
        parsed = semver.parse(version)
    except (InvalidIdentifier, InvalidVersion) as e:
        raise ArchiveBuildError(str(e)) from e

    _, path_major = split_path_version(module_path) or (module_path, "")
    if path_major.startswith(".v") and path_major.endswith("-unstable"):
        return
    # Early gopkg.in pseudo-versions were minted as v0.0.0- for .v1 paths
    if version.startswith("v0.0.0-") and path_major == ".v1":
        return

    incompatible = parsed.build == ("incompatible",)
    major = semver.major(version)
    want = path_major[1:]

    if path_major:
        if incompatible:
            raise ArchiveBuildError(f"{module_path}@{version}: +incompatible suffix not allowed: module path includes a major version suffix")
        if major != want:
            raise ArchiveBuildError(f"{module_path}@{version}: invalid version: should be {want}, not {major}")
    elif parsed.major >= 2 and not incompatible:
        raise ArchiveBuildError(f"{module_path}@{version}: invalid version: should be v0 or v1, not {major}")
    elif parsed.major < 2 and incompatible:
        raise ArchiveBuildError(f"{module_path}@{version}: invalid version: +incompatible suffix not allowed: major version {major} is compatible")


class ModuleScanner:
    """
    Walks a module source tree and decides which files go into its archive.

    Handles VCS directories, nested modules, vendored packages, non-regular
    files, optional .gitignore rules and custom exclude globs.
    """

    def __init__(
        self,
        root_path: Path,
        respect_gitignore: bool = False,
        exclude_globs: Optional[set[str]] = None,
    ):
        """
        Initialize the scanner.

        Args:
            root_path: Module root (the directory holding go.mod)
            respect_gitignore: Whether to omit files matched by .gitignore
            exclude_globs: Glob patterns to omit
        """
        self.root_path = root_path.resolve()
        self.exclude_globs = exclude_globs or set()
        self.omitted: dict[str, str] = {}

        self._gitignore: Optional[GitIgnoreParser] = None
        if respect_gitignore:
            self._gitignore = GitIgnoreParser(self.root_path)

    def _matches_exclude_glob(self, rel_path: str) -> Optional[str]:
        """
        Check if a path matches any exclude glob pattern.

        Returns the matching pattern or None.
        """
        for pattern in sorted(self.exclude_globs):
            if pattern.endswith("/**"):
                dir_pattern = pattern[:-3]
                if rel_path.startswith(dir_pattern + "/") or rel_path == dir_pattern:
                    return pattern
            elif fnmatch.fnmatch(rel_path, pattern):
                return pattern
            elif fnmatch.fnmatch(Path(rel_path).name, pattern):
                return pattern
        return None

    def _relative(self, path: Path) -> str:
        return normalize_path(str(path.relative_to(self.root_path)))

    def scan(self) -> Generator[ArchiveFile, None, None]:
        """
        Yield the files to archive in sorted relative-path order.

        Yields:
            ArchiveFile objects for each included file

        Raises:
            ArchiveBuildError: If a directory or file cannot be inspected.
        """
        for entry_path, st in self._walk_files():
            rel_path = self._relative(entry_path)

            if not stat.S_ISREG(st.st_mode):
                self.omitted[rel_path] = "not a regular file"
                continue

            if is_vendored_package(rel_path):
                self.omitted[rel_path] = "file is in vendor directory"
                continue

            pattern = self._matches_exclude_glob(rel_path)
            if pattern:
                self.omitted[rel_path] = f"matches exclude glob {pattern!r}"
                continue

            if self._gitignore and self._gitignore.is_ignored(entry_path):
                self.omitted[rel_path] = "ignored by .gitignore"
                continue

            yield ArchiveFile(path=entry_path, relative_path=rel_path, size_bytes=st.st_size)

    @staticmethod
    def _is_module_root(directory: Path) -> bool:
        """Report whether `directory` holds its own go.mod (any non-directory entry counts, symlinks included)."""
        try:
            st = os.lstat(directory / MANIFEST_NAME)
        except OSError:
            return False
        return not stat.S_ISDIR(st.st_mode)

    def _walk_files(self) -> Generator[tuple[Path, os.stat_result], None, None]:
        """
        Walk the module tree depth-first, yielding `(path, lstat)` for each non-directory.

        Directories are visited in sorted order so output is deterministic.
        """
        dirs_to_process = [self.root_path]

        while dirs_to_process:
            current_dir = dirs_to_process.pop()

            try:
                with os.scandir(current_dir) as entries:
                    entries_list = sorted(entries, key=lambda e: e.name)
            except OSError as e:
                raise ArchiveBuildError(f"read directory {current_dir}: {e}") from e

            subdirs = []
            for entry in entries_list:
                entry_path = Path(entry.path)
                try:
                    st = entry.stat(follow_symlinks=False)
                except OSError as e:
                    raise ArchiveBuildError(f"stat {entry_path}: {e}") from e

                if stat.S_ISDIR(st.st_mode):
                    if entry.name in VCS_DIRS:
                        self.omitted[self._relative(entry_path) + "/"] = "version control directory"
                        continue
                    if self._is_module_root(entry_path):
                        self.omitted[self._relative(entry_path) + "/"] = "file is in another module"
                        continue
                    subdirs.append(entry_path)
                else:
                    yield entry_path, st

            # Push in reverse so the smallest name is processed next
            dirs_to_process.extend(reversed(subdirs))


def plan_archive(
    root: Path,
    module_path: str,
    version: str,
    *,
    respect_gitignore: bool = False,
    exclude_globs: Optional[set[str]] = None,
) -> ArchivePlan:
    """Select and validate the files for a module archive.

    Args:
        root: Module source root containing go.mod.
        module_path: Module identity.
        version: Version being archived.
        respect_gitignore: Omit files matched by .gitignore rules.
        exclude_globs: Extra glob patterns to omit.

    Returns:
        An `ArchivePlan` with files sorted by relative path.

    Raises:
        ArchiveBuildError: If the module/version pair is inconsistent, the tree
            cannot be read, or any included file is invalid or too large.
    """
    check_module_version(module_path, version)

    scanner = ModuleScanner(
        root_path=root,
        respect_gitignore=respect_gitignore,
        exclude_globs=exclude_globs,
    )
    files = sorted(scanner.scan(), key=lambda f: f.relative_path)

    problems: list[str] = []
    seen_folded: dict[str, str] = {}
    total = 0
    for f in files:
        try:
            check_file_path(f.relative_path)
        except InvalidIdentifier as e:
            problems.append(str(e))
            continue

        folded = f.relative_path.lower()
        if folded in seen_folded:
            problems.append(f"{f.relative_path}: case-insensitive file name collision with {seen_folded[folded]}")
            continue
        seen_folded[folded] = f.relative_path

        if f.relative_path == MANIFEST_NAME and f.size_bytes > MAX_GO_MOD:
            problems.append(f"{MANIFEST_NAME}: file size {f.size_bytes} exceeds limit {MAX_GO_MOD}")
        elif f.relative_path == "LICENSE" and f.size_bytes > MAX_LICENSE:
            problems.append(f"LICENSE: file size {f.size_bytes} exceeds limit {MAX_LICENSE}")
        total += f.size_bytes

    if total > MAX_ZIP_FILE:
        problems.append(f"total size of files {total} exceeds limit {MAX_ZIP_FILE}")

    if problems:
        shown = "; ".join(problems[:5])
        more = f" (and {len(problems) - 5} more)" if len(problems) > 5 else ""
        raise ArchiveBuildError(f"create zip for {module_path}@{version}: {shown}{more}")

    return ArchivePlan(
        module_path=module_path,
        version=version,
        root=scanner.root_path,
        files=files,
        omitted=dict(sorted(scanner.omitted.items())),
        total_bytes=total,
    )


def write_zip(plan: ArchivePlan, stream: BinaryIO) -> None:
    """Write the archive described by `plan` to a seekable binary stream.

    Raises:
        OSError: If a source file cannot be read or the stream cannot be written.
    """
    with zipfile.ZipFile(stream, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
        for f in plan.files:
            zi = zipfile.ZipInfo(filename=plan.prefix + f.relative_path, date_time=_ZIP_EPOCH)
            zi.create_system = 3  # Unix
            zi.compress_type = zipfile.ZIP_DEFLATED
            # Normalize permissions: regular file 0644.
            zi.external_attr = (stat.S_IFREG | 0o644) << 16

            data = f.path.read_bytes()
            if len(data) != f.size_bytes:
                raise OSError(f"{f.relative_path}: file changed size while archiving")
            zf.writestr(zi, data, compresslevel=_COMPRESS_LEVEL)


def write_archive(plan: ArchivePlan, target: Path) -> Path:
    """Write the module archive to `target` via a same-directory temp file.

    Returns:
        The target path.

    Raises:
        ArchiveBuildError: If reading sources or writing the archive fails.
    """
    try:
        write_file_atomic(target, lambda stream: write_zip(plan, stream))
    except OSError as e:
        raise ArchiveBuildError(f"write {target}: {e}") from e
    return target
