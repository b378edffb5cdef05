"""
Module path and version escaping for proxy directory layouts.

Module proxies must be servable from case-insensitive filesystems, so every
uppercase ASCII letter is written as `!` followed by its lowercase form:
`github.com/Azure/sdk` becomes `github.com/!azure/sdk`. Because `!` can never
appear in a valid path or version, the encoding is unambiguous.
"""

from __future__ import annotations

import re

from .errors import InvalidIdentifier, InvalidVersion

# Windows device names, refused as path elements on every platform
_RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

_SHORT_NAME_RE = re.compile(r"~[0-9]+$")
_PATH_MAJOR_RE = re.compile(r"/v([0-9.]+)$")
_GOPKG_MAJOR_RE = re.compile(r"\.v([0-9]+)(?:-unstable)?$")

_PATH_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-._~")
_FIRST_ELEM_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz0123456789-.")
_FILE_PUNCT = frozenset("!#$%&()+,-.=@[]^_{}~ ")


def _file_name_ok(ch: str) -> bool:
    if ch.isascii():
        return ch.isalnum() or ch in _FILE_PUNCT
    # Non-ASCII letters are allowed in file names, other symbols are not
    return ch.isalpha()


def _check_element(elem: str, *, file_path: bool) -> str | None:
    """Return a reason string if `elem` is not a valid path element."""
    if not elem:
        return "empty path element"
    if elem.strip(".") == "":
        return f"invalid path element {elem!r}"
    if elem.startswith(".") and not file_path:
        return "leading dot in path element"
    if elem.endswith("."):
        return "trailing dot in path element"

    for ch in elem:
        ok = _file_name_ok(ch) if file_path else ch in _PATH_CHARS
        if not ok:
            return f"invalid char {ch!r}"

    short = elem.split(".", 1)[0]
    if short.upper() in _RESERVED_NAMES:
        return f"{short!r} disallowed as path element component on Windows"
    if _SHORT_NAME_RE.search(short):
        return "trailing tilde and digits in path element"
    return None


def split_path_version(path: str) -> tuple[str, str] | None:
    """Split a module path into its prefix and major version suffix.

    `example.com/m/v2` splits into `("example.com/m", "/v2")` and
    `gopkg.in/yaml.v3` into `("gopkg.in/yaml", ".v3")`. A path without a
    suffix comes back as `(path, "")`.

    Returns:
        The `(prefix, path_major)` pair, or None if the suffix is malformed
        (`/v0`, `/v1`, `/v02`, `/v1.2`, or a gopkg.in path without `.vN`).
    """
    if path.startswith("gopkg.in/"):
        match = _GOPKG_MAJOR_RE.search(path)
        if not match:
            return None
        path_major = path[match.start():]
        if match.group(1).startswith("0") and path_major != ".v0":
            return None
        return path[:match.start()], path_major

    match = _PATH_MAJOR_RE.search(path)
    if not match or match.start() == 0:
        return path, ""
    digits = match.group(1)
    if "." in digits or digits.startswith("0") or digits == "1":
        return None
    return path[:match.start()], match.group(0)


def check_module_path(path: str) -> None:
    """Validate a module path.

    Args:
        path: Module path, e.g. `example.com/org/repo/v2`.

    Raises:
        InvalidIdentifier: If the path is malformed.
    """

    def fail(reason: str) -> InvalidIdentifier:
        return InvalidIdentifier(f"malformed module path {path!r}: {reason}")

    if not path:
        raise fail("empty string")
    if path.startswith("/") or path.endswith("/"):
        raise fail("leading or trailing slash")
    if "//" in path:
        raise fail("double slash")

    elems = path.split("/")
    for elem in elems:
        reason = _check_element(elem, file_path=False)
        if reason:
            raise fail(reason)

    first = elems[0]
    if "." not in first:
        raise fail("missing dot in first path element")
    if first.startswith("-"):
        raise fail("leading dash in first path element")
    for ch in first:
        if ch not in _FIRST_ELEM_CHARS:
            raise fail(f"invalid char {ch!r} in first path element")

    if split_path_version(path) is None:
        if path.startswith("gopkg.in/"):
            raise fail("gopkg.in paths must end in .vN with no leading zero")
        raise fail("major version suffixes must be in the form /vN and are only allowed for v2 or later")


def check_file_path(path: str) -> None:
    """Validate a slash-separated file path relative to a module root.

    Raises:
        InvalidIdentifier: If the path is malformed.
    """
    if not path:
        raise InvalidIdentifier("malformed file path: empty string")
    if path.startswith("/") or path.endswith("/"):
        raise InvalidIdentifier(f"malformed file path {path!r}: leading or trailing slash")
    for elem in path.split("/"):
        reason = _check_element(elem, file_path=True)
        if reason:
            raise InvalidIdentifier(f"malformed file path {path!r}: {reason}")


def _escape_string(text: str) -> str:
    parts = []
    for ch in text:
        if ch == "!" or not ch.isascii():
            raise ValueError(f"cannot escape {text!r}")
        if "A" <= ch <= "Z":
            parts.append("!" + ch.lower())
        else:
            parts.append(ch)
    return "".join(parts)


def escape_path(path: str) -> str:
    """Return the case-safe encoding of a module path.

    Raises:
        InvalidIdentifier: If the module path is malformed.
    """
    check_module_path(path)
    try:
        return _escape_string(path)
    except ValueError as e:
        raise InvalidIdentifier(f"malformed module path {path!r}: {e}") from e


def escape_version(version: str) -> str:
    """Return the case-safe encoding of a version, e.g. `v1.0.0-RC1` -> `v1.0.0-!r!c1`.

    Raises:
        InvalidVersion: If the version cannot be used as a file name.
    """
    reason = _check_element(version, file_path=True)
    if reason is None and "!" in version:
        reason = "disallowed version string"
    if reason is not None:
        raise InvalidVersion(f"invalid escaped version {version!r}: {reason}")
    try:
        return _escape_string(version)
    except ValueError as e:
        raise InvalidVersion(f"invalid escaped version {version!r}: {e}") from e
