"""Tests for the publisher module."""

import json
from datetime import datetime, timezone

import pytest

from gopack.config import PublishConfig
from gopack.errors import (
    ArchiveBuildError,
    InvalidIdentifier,
    InvalidVersion,
    ManifestNotFound,
    MissingFlag,
)
from gopack.publisher import publish

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestPublish:
    """Tests for a full publish run."""

    def test_writes_layout(self, module_src, tmp_path, go_mod_text):
        """Test that all four files land in the proxy layout."""
        out = tmp_path / "proxy"

        result = publish(PublishConfig(src=module_src, version="v1.0.0", out=out), now=NOW)

        at_v = out / "example.com" / "hello" / "@v"
        assert result.mod_file == at_v / "v1.0.0.mod"
        assert result.written_files == [
            at_v / "v1.0.0.mod",
            at_v / "v1.0.0.info",
            at_v / "v1.0.0.zip",
            at_v / "list",
        ]
        assert (at_v / "v1.0.0.mod").read_text() == go_mod_text
        assert json.loads((at_v / "v1.0.0.info").read_bytes()) == {
            "Version": "v1.0.0",
            "Time": "2024-05-01T12:00:00Z",
        }
        assert (at_v / "v1.0.0.zip").stat().st_size > 0
        assert (at_v / "list").read_text() == "v1.0.0\n"
        assert result.list_update is not None and result.list_update.added

    def test_escapes_uppercase(self, make_module, tmp_path):
        """Test that uppercase module paths and versions are escaped on disk."""
        src = make_module(tmp_path / "src", "module example.com/MyOrg/Mod\n")
        out = tmp_path / "proxy"

        result = publish(PublishConfig(src=src, version="v1.0.0-RC1", out=out), now=NOW)

        at_v = out / "example.com" / "!my!org" / "!mod" / "@v"
        assert result.escaped_path == "example.com/!my!org/!mod"
        assert (at_v / "v1.0.0-!r!c1.zip").is_file()
        assert (at_v / "list").read_text() == "v1.0.0-RC1\n"

    def test_gopkg_in_major_suffix(self, make_module, tmp_path):
        """Test that a gopkg.in .vN module publishes its matching major."""
        src = make_module(tmp_path / "src", "module gopkg.in/yaml.v2\n")
        out = tmp_path / "proxy"

        result = publish(PublishConfig(src=src, version="v2.4.0", out=out), now=NOW)

        at_v = out / "gopkg.in" / "yaml.v2" / "@v"
        assert result.zip_file == at_v / "v2.4.0.zip"
        assert (at_v / "list").read_text() == "v2.4.0\n"

    def test_idempotent(self, module_src, tmp_path):
        """Test that republishing the same version yields identical artifacts."""
        out = tmp_path / "proxy"
        config = PublishConfig(src=module_src, version="v1.0.0", out=out)

        first = publish(config, now=NOW)
        mod1, zip1 = first.mod_file.read_bytes(), first.zip_file.read_bytes()
        second = publish(config)

        assert second.mod_file.read_bytes() == mod1
        assert second.zip_file.read_bytes() == zip1
        assert second.list_file.read_text() == "v1.0.0\n"
        assert second.list_update is not None and not second.list_update.added

    def test_multiple_versions(self, module_src, tmp_path):
        """Test that the list accumulates versions in order."""
        out = tmp_path / "proxy"
        for version in ["v1.2.0", "v1.0.0", "v1.2.0", "v1.3.0-beta"]:
            result = publish(PublishConfig(src=module_src, version=version, out=out), now=NOW)

        assert result.list_file.read_text() == "v1.0.0\nv1.2.0\nv1.3.0-beta\n"

    def test_reports_dropped_list_lines(self, module_src, tmp_path):
        """Test that corrupt list lines are repaired and reported."""
        at_v = tmp_path / "proxy" / "example.com" / "hello" / "@v"
        at_v.mkdir(parents=True)
        (at_v / "list").write_text("garbage\n\nv0.9.0\n")

        result = publish(PublishConfig(src=module_src, version="v1.0.0", out=tmp_path / "proxy"), now=NOW)

        assert result.list_update is not None
        assert result.list_update.dropped == ["garbage"]
        assert (at_v / "list").read_text() == "v0.9.0\nv1.0.0\n"

    def test_dry_run_writes_nothing(self, module_src, tmp_path):
        """Test that a dry run plans but does not create the output tree."""
        out = tmp_path / "proxy"

        result = publish(PublishConfig(src=module_src, version="v1.0.0", out=out, dry_run=True))

        assert result.dry_run
        assert result.list_update is None
        assert len(result.archive.files) == 5
        assert not out.exists()


class TestPublishFailures:
    """Tests for validation and abort behaviour."""

    @pytest.mark.parametrize("version", ["1.2.3", "v1.2", "v1", "latest", " v1.0.0", "v1.0.0\n"])
    def test_invalid_version_writes_nothing(self, module_src, tmp_path, version):
        """Test that invalid versions fail before the output tree is touched."""
        out = tmp_path / "proxy"

        with pytest.raises(InvalidVersion):
            publish(PublishConfig(src=module_src, version=version, out=out))

        assert not out.exists()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"version": "v1.0.0", "out": "proxy"},
            {"src": "src", "out": "proxy"},
            {"src": "src", "version": "v1.0.0"},
            {"src": "", "version": "v1.0.0", "out": "proxy"},
        ],
    )
    def test_missing_flag(self, kwargs):
        """Test that each required input is enforced."""
        with pytest.raises(MissingFlag):
            publish(PublishConfig(**kwargs))

    def test_missing_manifest(self, tmp_path):
        """Test that a source tree without go.mod fails before writing."""
        (tmp_path / "src").mkdir()
        out = tmp_path / "proxy"

        with pytest.raises(ManifestNotFound):
            publish(PublishConfig(src=tmp_path / "src", version="v1.0.0", out=out))

        assert not out.exists()

    def test_invalid_module_path(self, make_module, tmp_path):
        """Test that an unescapable module path fails before writing."""
        src = make_module(tmp_path / "src", "module nodot/mod\n")
        out = tmp_path / "proxy"

        with pytest.raises(InvalidIdentifier):
            publish(PublishConfig(src=src, version="v1.0.0", out=out))

        assert not out.exists()

    def test_major_version_mismatch(self, module_src, tmp_path):
        """Test that v2+ versions need a /vN module path."""
        out = tmp_path / "proxy"

        with pytest.raises(ArchiveBuildError):
            publish(PublishConfig(src=module_src, version="v2.0.0", out=out))

        assert not out.exists()

    def test_gopkg_in_major_mismatch(self, make_module, tmp_path):
        """Test that a gopkg.in .v2 module rejects a v1 version."""
        src = make_module(tmp_path / "src", "module gopkg.in/yaml.v2\n")
        out = tmp_path / "proxy"

        with pytest.raises(ArchiveBuildError, match="should be v2, not v1"):
            publish(PublishConfig(src=src, version="v1.0.0", out=out))

        assert not out.exists()
