"""
Exception taxonomy for gopack.

Every failure aborts the whole publish run; the CLI turns any `GopackError`
into a single-line message and a non-zero exit code.
"""

from __future__ import annotations


class GopackError(Exception):
    """Base class for all gopack errors."""

    pass


# Input validation


class MissingFlag(GopackError):
    """A required input (`-src`, `-version`, `-out`) was empty or absent."""

    pass


class InvalidVersion(GopackError):
    """A version string is not a valid semantic version or cannot be escaped."""

    pass


class ConfigError(GopackError):
    """A gopack config file could not be read or contains bad values."""

    pass


# Manifest


class ManifestError(GopackError):
    """Base class for go.mod problems."""

    pass


class ManifestNotFound(ManifestError):
    """go.mod is absent or unreadable."""

    pass


class ManifestParseError(ManifestError):
    """go.mod content is malformed."""

    pass


class ManifestIncomplete(ManifestError):
    """go.mod parsed but declares no module path."""

    pass


# Encoding


class InvalidIdentifier(GopackError):
    """A module path or file path falls outside the accepted grammar."""

    pass


# Archive


class ArchiveBuildError(GopackError):
    """The module archive could not be built."""

    pass


# Output I/O


class OutputWriteError(GopackError):
    """Writing an output file or directory failed."""

    pass


class ListReadError(OutputWriteError):
    """Opening the existing version list failed for a reason other than absence."""

    pass


class ListScanError(OutputWriteError):
    """Reading the existing version list failed part-way through."""

    pass


class ListWriteError(OutputWriteError):
    """Staging the new version list in a temporary file failed."""

    pass


class ListRenameError(OutputWriteError):
    """Renaming the staged version list over the old one failed."""

    pass
