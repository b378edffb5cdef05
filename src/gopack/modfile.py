"""
go.mod reader for gopack.

Parses the subset of the go.mod grammar needed to publish a module: the
`module` directive (the module identity) plus enough structural validation of
the other directives to reject malformed manifests the way the Go toolchain
would.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from . import semver
from .errors import ManifestIncomplete, ManifestNotFound, ManifestParseError

MANIFEST_NAME = "go.mod"

# Directives that may appear in block form: `require ( ... )`
BLOCK_VERBS = frozenset({"require", "exclude", "replace", "retract", "tool", "ignore", "godebug"})
# Directives that only appear on a single line
LINE_VERBS = frozenset({"module", "go", "toolchain"})

_GO_VERSION_RE = re.compile(r"^([1-9][0-9]*)\.(0|[1-9][0-9]*)(\.(0|[1-9][0-9]*))?([a-z]+[0-9]+)?$")
_TOOLCHAIN_RE = re.compile(r"^go[1-9][0-9]*(\.(0|[1-9][0-9]*)){1,2}([a-z]+[0-9]+)?(-[A-Za-z0-9.+-]+)?$|^default$")


@dataclass
class Token:
    """A single lexical token with its 1-based line number."""

    text: str
    line: int
    quoted: bool = False


@dataclass
class Line:
    """A logical go.mod line: its tokens and any trailing comment text."""

    tokens: list[Token]
    comment: str = ""

    @property
    def lineno(self) -> int:
        return self.tokens[0].line if self.tokens else 0


@dataclass
class Requirement:
    """A `require` entry."""

    path: str
    version: str
    indirect: bool = False


@dataclass
class Manifest:
    """Parsed contents of a go.mod file.

    Attributes:
        module_path: Module identity declared by the `module` directive.
        data: Raw file bytes, published verbatim as the `.mod` file.
        go_version: Value of the `go` directive, if present.
        toolchain: Value of the `toolchain` directive, if present.
        requires: Required modules in file order.
        excludes: Excluded `(path, version)` pairs.
        replaces: Replacement targets keyed by the replaced module (with optional `@version`).
        retracts: Number of retracted versions or ranges.
    """

    module_path: str
    data: bytes = b""
    go_version: str | None = None
    toolchain: str | None = None
    requires: list[Requirement] = field(default_factory=list)
    excludes: list[tuple[str, str]] = field(default_factory=list)
    replaces: dict[str, str] = field(default_factory=dict)
    retracts: int = 0


class _Lexer:
    """Split go.mod text into logical lines of tokens.

    Parentheses are returned as their own tokens so the parser can detect
    block openings and closings.
    """

    def __init__(self, text: str, filename: str = MANIFEST_NAME) -> None:
        self.text = text
        self.filename = filename

    def error(self, line: int, message: str) -> ManifestParseError:
        return ManifestParseError(f"{self.filename}:{line}: {message}")

    def lines(self) -> list[Line]:
        result: list[Line] = []
        for lineno, raw in enumerate(self.text.splitlines(), start=1):
            tokens, comment = self._tokenize(raw, lineno)
            if tokens:
                result.append(Line(tokens=tokens, comment=comment))
        return result

    def _tokenize(self, raw: str, lineno: int) -> tuple[list[Token], str]:
        tokens: list[Token] = []
        i, n = 0, len(raw)
        while i < n:
            ch = raw[i]
            if ch in " \t\r":
                i += 1
            elif raw.startswith("//", i):
                return tokens, raw[i + 2 :].strip()
            elif ch in "()":
                tokens.append(Token(ch, lineno))
                i += 1
            elif ch == '"':
                text, i = self._quoted(raw, i, lineno)
                tokens.append(Token(text, lineno, quoted=True))
            elif ch == "`":
                end = raw.find("`", i + 1)
                if end < 0:
                    raise self.error(lineno, "unterminated raw string")
                tokens.append(Token(raw[i + 1 : end], lineno, quoted=True))
                i = end + 1
            else:
                start = i
                while i < n and raw[i] not in " \t\r()\"`" and not raw.startswith("//", i):
                    i += 1
                tokens.append(Token(raw[start:i], lineno))
        return tokens, ""

    def _quoted(self, raw: str, start: int, lineno: int) -> tuple[str, int]:
        out: list[str] = []
        i = start + 1
        escapes = {"n": "\n", "t": "\t", "\\": "\\", '"': '"'}
        while i < len(raw):
            ch = raw[i]
            if ch == '"':
                return "".join(out), i + 1
            if ch == "\\":
                if i + 1 >= len(raw) or raw[i + 1] not in escapes:
                    raise self.error(lineno, "invalid escape in quoted string")
                out.append(escapes[raw[i + 1]])
                i += 2
                continue
            out.append(ch)
            i += 1
        raise self.error(lineno, "unterminated quoted string")


class _Parser:
    """Build a `Manifest` from lexed go.mod lines."""

    def __init__(self, lexer: _Lexer) -> None:
        self.lexer = lexer
        self.module_path: str | None = None
        self.manifest = Manifest(module_path="")

    def error(self, line: int, message: str) -> ManifestParseError:
        return self.lexer.error(line, message)

    def parse(self) -> Manifest:
        lines = self.lexer.lines()
        i = 0
        while i < len(lines):
            line = lines[i]
            tokens = line.tokens
            verb = tokens[0]

            if verb.text in ("(", ")") or verb.quoted:
                raise self.error(verb.line, f"unexpected {verb.text!r}")

            if len(tokens) >= 2 and tokens[-1].text == "(" and not tokens[-1].quoted:
                if len(tokens) != 2:
                    raise self.error(verb.line, f"unexpected tokens before block opening for {verb.text}")
                if verb.text not in BLOCK_VERBS:
                    if verb.text in LINE_VERBS:
                        raise self.error(verb.line, f"{verb.text} directive does not accept a block")
                    raise self.error(verb.line, f"unknown block type: {verb.text}")
                i = self._parse_block(verb.text, lines, i + 1, verb.line)
                continue

            self._directive(verb.text, tokens[1:], line)
            i += 1

        if self.module_path is None:
            raise ManifestIncomplete(f"cannot determine module path from {self.lexer.filename}")
        if not self.module_path:
            raise ManifestIncomplete(f"{self.lexer.filename}: empty module path")

        self.manifest.module_path = self.module_path
        return self.manifest

    def _parse_block(self, verb: str, lines: list[Line], start: int, open_line: int) -> int:
        i = start
        while i < len(lines):
            line = lines[i]
            first = line.tokens[0]
            if first.text == ")" and not first.quoted:
                if len(line.tokens) != 1:
                    raise self.error(first.line, "unexpected tokens after block closing")
                return i + 1
            for tok in line.tokens:
                if tok.text in ("(", ")") and not tok.quoted:
                    raise self.error(tok.line, f"unexpected {tok.text!r} inside {verb} block")
            self._directive(verb, line.tokens, line)
            i += 1
        raise self.error(open_line, f"unclosed {verb} block")

    def _directive(self, verb: str, args: list[Token], line: Line) -> None:
        lineno = line.lineno
        for tok in args:
            if tok.text in ("(", ")") and not tok.quoted:
                raise self.error(tok.line, f"unexpected {tok.text!r}")
        values = [tok.text for tok in args]

        if verb == "module":
            if self.module_path is not None:
                raise self.error(lineno, "repeated module statement")
            if len(values) != 1:
                raise self.error(lineno, "usage: module module/path")
            self.module_path = values[0]

        elif verb == "go":
            if len(values) != 1:
                raise self.error(lineno, "go directive expects exactly one argument")
            if not _GO_VERSION_RE.match(values[0]):
                raise self.error(lineno, f"invalid go version {values[0]!r}: must match format 1.23.0")
            self.manifest.go_version = values[0]

        elif verb == "toolchain":
            if len(values) != 1 or not _TOOLCHAIN_RE.match(values[0]):
                raise self.error(lineno, "usage: toolchain name")
            self.manifest.toolchain = values[0]

        elif verb == "require":
            if len(values) != 2:
                raise self.error(lineno, "usage: require module/path v1.2.3")
            self._check_version(values[1], lineno)
            indirect = line.comment == "indirect" or line.comment.startswith("indirect;")
            self.manifest.requires.append(Requirement(values[0], values[1], indirect))

        elif verb == "exclude":
            if len(values) != 2:
                raise self.error(lineno, "usage: exclude module/path v1.2.3")
            self._check_version(values[1], lineno)
            self.manifest.excludes.append((values[0], values[1]))

        elif verb == "replace":
            self._replace(values, lineno)

        elif verb == "retract":
            if not values:
                raise self.error(lineno, "usage: retract version | retract [low, high]")
            self.manifest.retracts += 1

        elif verb in ("tool", "ignore"):
            if len(values) != 1:
                raise self.error(lineno, f"usage: {verb} path")

        elif verb == "godebug":
            if len(values) != 1 or "=" not in values[0]:
                raise self.error(lineno, "usage: godebug key=value")

        else:
            raise self.error(lineno, f"unknown directive: {verb}")

    def _replace(self, values: list[str], lineno: int) -> None:
        if "=>" not in values:
            raise self.error(lineno, "usage: replace module/path [v1.2.3] => other/module v1.4 | local/dir")
        arrow = values.index("=>")
        old, new = values[:arrow], values[arrow + 1 :]
        if len(old) not in (1, 2) or len(new) not in (1, 2):
            raise self.error(lineno, "usage: replace module/path [v1.2.3] => other/module v1.4 | local/dir")
        if len(old) == 2:
            self._check_version(old[1], lineno)
        if len(new) == 2:
            self._check_version(new[1], lineno)
        key = "@".join(old)
        self.manifest.replaces[key] = " ".join(new)

    def _check_version(self, version: str, lineno: int) -> None:
        if not semver.is_valid(version):
            raise self.error(lineno, f"invalid module version {version!r}: must be of the form v1.2.3")


def parse(data: bytes, filename: str = MANIFEST_NAME) -> Manifest:
    """Parse go.mod bytes.

    Args:
        data: Raw go.mod content.
        filename: Name used in error messages.

    Returns:
        The parsed `Manifest` (with `data` set to the input bytes).

    Raises:
        ManifestParseError: If the content is malformed.
        ManifestIncomplete: If no module path is declared.
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ManifestParseError(f"{filename}: invalid UTF-8 at byte {e.start}") from e

    manifest = _Parser(_Lexer(text, filename)).parse()
    manifest.data = data
    return manifest


def read_manifest(src_dir: Path) -> Manifest:
    """Locate, read and parse the go.mod at the root of a source tree.

    Args:
        src_dir: Module source directory.

    Returns:
        The parsed `Manifest`.

    Raises:
        ManifestNotFound: If the directory or go.mod is missing or unreadable.
        ManifestParseError: If go.mod is malformed.
        ManifestIncomplete: If go.mod declares no module path.
    """
    manifest_path = Path(src_dir) / MANIFEST_NAME
    try:
        data = manifest_path.read_bytes()
    except OSError as e:
        raise ManifestNotFound(f"read {MANIFEST_NAME}: {e}") from e

    return parse(data, MANIFEST_NAME)
