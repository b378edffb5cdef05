"""Tests for the modfile module."""

import pytest

from gopack.errors import ManifestIncomplete, ManifestNotFound, ManifestParseError
from gopack.modfile import parse, read_manifest


class TestParse:
    """Tests for go.mod parsing."""

    def test_basic_manifest(self, go_mod_text):
        """Test parsing module, go and a require block."""
        manifest = parse(go_mod_text.encode())

        assert manifest.module_path == "example.com/hello"
        assert manifest.go_version == "1.21"
        assert [(r.path, r.version, r.indirect) for r in manifest.requires] == [
            ("golang.org/x/text", "v0.14.0", True),
            ("rsc.io/quote", "v1.5.2", False),
        ]
        assert manifest.data == go_mod_text.encode()

    def test_quoted_module_path(self):
        """Test double- and back-quoted module paths."""
        assert parse(b'module "example.com/quoted"\n').module_path == "example.com/quoted"
        assert parse(b"module `example.com/raw`\n").module_path == "example.com/raw"

    def test_comments_and_blank_lines(self):
        """Test that comments and blank lines are ignored."""
        data = b"// Package hello.\n\nmodule example.com/hello // trailing\n\n// end\n"

        assert parse(data).module_path == "example.com/hello"

    def test_other_directives(self):
        """Test replace, exclude, retract, toolchain and single-line require."""
        data = b"""module example.com/m

go 1.22.1
toolchain go1.22.3

require rsc.io/quote v1.5.2
exclude rsc.io/quote v1.5.1
replace (
	rsc.io/quote v1.5.2 => ../quote
	golang.org/x/text => golang.org/x/text v0.15.0
)
retract [v1.0.0, v1.0.5]
retract v1.1.0 // broken
"""
        manifest = parse(data)

        assert manifest.toolchain == "go1.22.3"
        assert manifest.excludes == [("rsc.io/quote", "v1.5.1")]
        assert manifest.replaces == {
            "rsc.io/quote@v1.5.2": "../quote",
            "golang.org/x/text": "golang.org/x/text v0.15.0",
        }
        assert manifest.retracts == 2

    def test_missing_module(self):
        """Test that a go.mod without a module directive is incomplete."""
        with pytest.raises(ManifestIncomplete):
            parse(b"go 1.21\n")

    def test_empty_module_path(self):
        """Test that an empty quoted module path is incomplete."""
        with pytest.raises(ManifestIncomplete):
            parse(b'module ""\n')

    @pytest.mark.parametrize(
        "data",
        [
            b"module example.com/a\nmodule example.com/b\n",
            b"module example.com/a b\n",
            b"module\n",
            b"module example.com/a\nfrobnicate x\n",
            b"module example.com/a\nrequire (\n\trsc.io/quote v1.5.2\n",
            b"module example.com/a\n)\n",
            b'module "example.com/a\n',
            b"module example.com/a\nrequire rsc.io/quote v1.5\n",
            b"module example.com/a\nrequire rsc.io/quote\n",
            b"module example.com/a\ngo one\n",
            b"module example.com/a\nreplace rsc.io/quote ../quote\n",
            b"module (\n\texample.com/a\n)\n",
            b"module example.com/a\n\xff\xfe\n",
        ],
    )
    def test_malformed(self, data):
        """Test that malformed manifests raise ManifestParseError."""
        with pytest.raises(ManifestParseError):
            parse(data)

    def test_error_has_line_number(self):
        """Test that parse errors carry the offending line number."""
        with pytest.raises(ManifestParseError) as exc_info:
            parse(b"module example.com/a\n\nbogus directive\n")

        assert "go.mod:3:" in str(exc_info.value)


class TestReadManifest:
    """Tests for locating and reading go.mod."""

    def test_reads_from_directory(self, module_src):
        """Test reading the fixture module."""
        manifest = read_manifest(module_src)

        assert manifest.module_path == "example.com/hello"

    def test_missing_go_mod(self, tmp_path):
        """Test that a directory without go.mod raises ManifestNotFound."""
        with pytest.raises(ManifestNotFound):
            read_manifest(tmp_path)

    def test_missing_directory(self, tmp_path):
        """Test that a nonexistent directory raises ManifestNotFound."""
        with pytest.raises(ManifestNotFound):
            read_manifest(tmp_path / "nope")
