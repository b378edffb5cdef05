"""
Semantic version handling for Go module versions.

Go module versions are SemVer 2.0 strings with a mandatory leading `v`
(`v1.2.3`, `v2.0.0-rc.1`, `v1.0.0+incompatible`). Only the full three-part
form is accepted; the `v1` / `v1.2` shorthands some tools allow are rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable

from .errors import InvalidVersion

_NUM = r"0|[1-9][0-9]*"
_PRE_IDENT = r"(?:0|[1-9][0-9]*|[0-9]*[A-Za-z-][0-9A-Za-z-]*)"
_BUILD_IDENT = r"[0-9A-Za-z-]+"

_SEMVER_RE = re.compile(
    rf"^v(?P<major>{_NUM})\.(?P<minor>{_NUM})\.(?P<patch>{_NUM})"
    rf"(?:-(?P<prerelease>{_PRE_IDENT}(?:\.{_PRE_IDENT})*))?"
    rf"(?:\+(?P<build>{_BUILD_IDENT}(?:\.{_BUILD_IDENT})*))?$"
)


@dataclass(frozen=True)
class Version:
    """A parsed semantic version.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        prerelease: Dot-separated pre-release identifiers (empty for releases).
        build: Dot-separated build metadata identifiers (ignored for ordering).
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __str__(self) -> str:
        text = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text


def is_valid(version: str) -> bool:
    """Report whether `version` is a full `vMAJOR.MINOR.PATCH` semantic version."""
    return bool(_SEMVER_RE.fullmatch(version))


def parse(version: str) -> Version:
    """Parse a version string.

    Args:
        version: Version string such as `v1.2.3-beta.1`.

    Returns:
        The parsed `Version`.

    Raises:
        InvalidVersion: If the string does not match the semantic version grammar.
    """
    match = _SEMVER_RE.fullmatch(version)
    if not match:
        raise InvalidVersion(f"invalid version {version!r} (want semver like v1.2.3)")

    prerelease = match.group("prerelease")
    build = match.group("build")
    return Version(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
        build=tuple(build.split(".")) if build else (),
    )


def _compare_identifiers(a: tuple[str, ...], b: tuple[str, ...]) -> int:
    for x, y in zip(a, b):
        if x == y:
            continue
        x_num, y_num = x.isdigit(), y.isdigit()
        if x_num and y_num:
            return -1 if int(x) < int(y) else 1
        # Numeric identifiers always have lower precedence than alphanumeric ones
        if x_num != y_num:
            return -1 if x_num else 1
        return -1 if x < y else 1
    return (len(a) > len(b)) - (len(a) < len(b))


def compare(a: str, b: str) -> int:
    """Compare two versions by semantic-version precedence.

    Build metadata is ignored, so `v1.0.0+a` and `v1.0.0+b` compare equal.

    Args:
        a: First version.
        b: Second version.

    Returns:
        -1, 0 or 1 as `a` is lower than, equal to or higher than `b`.

    Raises:
        InvalidVersion: If either string is not a valid version.
    """
    va, vb = parse(a), parse(b)

    core_a = (va.major, va.minor, va.patch)
    core_b = (vb.major, vb.minor, vb.patch)
    if core_a != core_b:
        return -1 if core_a < core_b else 1

    # A release outranks any pre-release of the same core
    if not va.prerelease or not vb.prerelease:
        return (not va.prerelease) - (not vb.prerelease)

    return _compare_identifiers(va.prerelease, vb.prerelease)


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Return `versions` sorted ascending by precedence (stable for equal versions)."""
    return sorted(versions, key=cmp_to_key(compare))


def major(version: str) -> str:
    """Return the major version prefix, e.g. `v2` for `v2.3.4`."""
    return f"v{parse(version).major}"


def is_canonical(version: str) -> bool:
    """Report whether `version` is in the canonical form Go stores in module archives.

    Canonical versions carry no build metadata, except for the `+incompatible`
    marker used by pre-modules major versions.
    """
    if not is_valid(version):
        return False
    build = parse(version).build
    return not build or build == ("incompatible",)
