"""
Configuration models and defaults for gopack.

Holds the explicit `PublishConfig` passed into the publisher, the result
records it returns, and the layout constants of a module proxy tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

DIR_MODE = 0o755
FILE_MODE = 0o644

# Proxy layout names
AT_V_DIR = "@v"
LIST_FILE_NAME = "list"
MOD_SUFFIX = ".mod"
INFO_SUFFIX = ".info"
ZIP_SUFFIX = ".zip"

# Archive limits (uncompressed bytes)
MAX_ZIP_FILE = 500 << 20
MAX_GO_MOD = 16 << 20
MAX_LICENSE = 16 << 20

# Directories never packaged into a module archive
VCS_DIRS: frozenset[str] = frozenset({".bzr", ".git", ".hg", ".svn"})


@dataclass
class PublishConfig:
    """Inputs for one publish run.

    Attributes:
        src: Module source directory containing go.mod.
        version: Version to publish, e.g. `v1.2.3`.
        out: Root of the proxy directory tree.
        respect_gitignore: Omit files matched by `.gitignore` rules from the archive.
        exclude_globs: Extra glob patterns to omit from the archive.
        dry_run: Plan the run without creating directories or writing files.
    """

    src: Path | None = None
    version: str = ""
    out: Path | None = None
    respect_gitignore: bool = False
    exclude_globs: set[str] = field(default_factory=set)
    dry_run: bool = False

    def __post_init__(self) -> None:
        """Normalize path-like inputs; empty strings stay empty for validation.

        The version is kept verbatim so surrounding whitespace fails validation.
        """
        if isinstance(self.src, str):
            self.src = Path(self.src) if self.src else None
        if isinstance(self.out, str):
            self.out = Path(self.out) if self.out else None
        self.version = self.version or ""
        self.exclude_globs = {g.strip() for g in self.exclude_globs if g and g.strip()}


@dataclass
class ArchiveFile:
    """A file selected for the module archive.

    Attributes:
        path: Absolute path on disk.
        relative_path: Slash-separated path relative to the module root.
        size_bytes: File size in bytes.
    """

    path: Path
    relative_path: str
    size_bytes: int


@dataclass
class ArchivePlan:
    """The files that make up a module archive, and those left out.

    Attributes:
        module_path: Module identity.
        version: Module version.
        root: Absolute module source root.
        files: Included files, sorted by relative path.
        omitted: Relative path -> reason for files deliberately left out.
        total_bytes: Sum of included file sizes.
    """

    module_path: str
    version: str
    root: Path
    files: list[ArchiveFile] = field(default_factory=list)
    omitted: dict[str, str] = field(default_factory=dict)
    total_bytes: int = 0

    @property
    def prefix(self) -> str:
        """Directory prefix of every archive entry, `<module>@<version>/`."""
        return f"{self.module_path}@{self.version}/"


@dataclass
class ListUpdate:
    """Outcome of a version list update.

    Attributes:
        versions: Final list contents in ascending order.
        dropped: Lines from the old file that were discarded as invalid.
        added: Whether the published version was new to the list.
    """

    versions: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    added: bool = False


@dataclass
class PublishResult:
    """Summary of a publish run.

    Attributes:
        module_path: Module identity from go.mod.
        version: Published version.
        escaped_path: Case-escaped module path.
        escaped_version: Case-escaped version.
        mod_file: Path of the `.mod` copy.
        info_file: Path of the `.info` descriptor.
        zip_file: Path of the module archive.
        list_file: Path of the version list.
        archive: The archive plan that was (or would be) written.
        list_update: Version list outcome; None on a dry run.
        dry_run: Whether anything was actually written.
    """

    module_path: str
    version: str
    escaped_path: str
    escaped_version: str
    mod_file: Path
    info_file: Path
    zip_file: Path
    list_file: Path
    archive: ArchivePlan
    list_update: ListUpdate | None = None
    dry_run: bool = False

    @property
    def written_files(self) -> list[Path]:
        """Every output path of the run, in write order: `.mod`, `.info`, `.zip`, `list`."""
        return [self.mod_file, self.info_file, self.zip_file, self.list_file]
