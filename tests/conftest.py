"""Shared fixtures for gopack tests."""

from pathlib import Path

import pytest

GO_MOD = """\
module example.com/hello

go 1.21

require (
	golang.org/x/text v0.14.0 // indirect
	rsc.io/quote v1.5.2
)
"""


def write_module(root: Path, go_mod: str = GO_MOD) -> Path:
    """Create a small Go module source tree under `root`."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "go.mod").write_text(go_mod)
    (root / "hello.go").write_text("package hello\n\nfunc Hello() string { return \"hi\" }\n")
    (root / "LICENSE").write_text("MIT\n")
    (root / "internal").mkdir()
    (root / "internal" / "util.go").write_text("package internal\n")

    # Never archived
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "nested").mkdir()
    (root / "nested" / "go.mod").write_text("module example.com/hello/nested\n")
    (root / "nested" / "nested.go").write_text("package nested\n")
    (root / "vendor").mkdir()
    (root / "vendor" / "modules.txt").write_text("# rsc.io/quote v1.5.2\n")
    (root / "vendor" / "rsc.io").mkdir()
    (root / "vendor" / "rsc.io" / "quote.go").write_text("package quote\n")
    return root


@pytest.fixture
def module_src(tmp_path: Path) -> Path:
    """A module source tree for example.com/hello."""
    return write_module(tmp_path / "src")


@pytest.fixture
def go_mod_text() -> str:
    """The go.mod content used by `module_src`."""
    return GO_MOD


@pytest.fixture
def make_module():
    """Factory for module trees with custom go.mod content."""
    return write_module
