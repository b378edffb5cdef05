"""Tests for the semver module."""

import pytest

from gopack import semver
from gopack.errors import InvalidVersion


class TestIsValid:
    """Tests for version validation."""

    @pytest.mark.parametrize(
        "version",
        ["v0.0.0", "v1.2.3", "v1.0.0-rc.1", "v2.0.0-beta", "v1.0.0+incompatible", "v1.2.3-0.20240101-abcdef"],
    )
    def test_accepts_full_versions(self, version):
        """Test that full three-part versions are valid."""
        assert semver.is_valid(version)

    @pytest.mark.parametrize(
        "version",
        ["", "1.2.3", "v1.2", "v1", "v01.2.3", "v1.2.3-01", "v1.2.3-", "v1.2.3+", "V1.2.3", "v1.2.3 "],
    )
    def test_rejects_malformed_versions(self, version):
        """Test that shorthand, unprefixed and malformed versions are rejected."""
        assert not semver.is_valid(version)

    def test_parse_raises(self):
        """Test that parse raises InvalidVersion."""
        with pytest.raises(InvalidVersion):
            semver.parse("1.2.3")

    def test_parse_fields(self):
        """Test parsed components."""
        v = semver.parse("v1.2.3-rc.1+build.5")

        assert (v.major, v.minor, v.patch) == (1, 2, 3)
        assert v.prerelease == ("rc", "1")
        assert v.build == ("build", "5")
        assert str(v) == "v1.2.3-rc.1+build.5"


class TestCompare:
    """Tests for precedence ordering."""

    def test_numeric_not_lexicographic(self):
        """Test that v1.10.0 sorts after v1.9.0."""
        assert semver.compare("v1.9.0", "v1.10.0") == -1
        assert semver.compare("v1.10.0", "v1.9.0") == 1

    def test_prerelease_before_release(self):
        """Test that a pre-release sorts before the release of the same core."""
        assert semver.compare("v2.0.0-beta", "v2.0.0") == -1
        assert semver.compare("v2.0.0", "v2.0.0-beta") == 1

    def test_prerelease_chain(self):
        """Test the SemVer 2.0 pre-release precedence example."""
        ordered = [
            "v1.0.0-alpha",
            "v1.0.0-alpha.1",
            "v1.0.0-alpha.beta",
            "v1.0.0-beta",
            "v1.0.0-beta.2",
            "v1.0.0-beta.11",
            "v1.0.0-rc.1",
            "v1.0.0",
        ]
        assert semver.sort_versions(reversed(ordered)) == ordered

    def test_build_metadata_ignored(self):
        """Test that build metadata does not affect precedence."""
        assert semver.compare("v1.0.0+a", "v1.0.0+b") == 0

    def test_sort_versions(self):
        """Test sorting a mixed list."""
        result = semver.sort_versions(["v1.2.0", "v1.0.0", "v2.0.0-beta", "v1.10.0", "v1.2.0-alpha"])

        assert result == ["v1.0.0", "v1.2.0-alpha", "v1.2.0", "v1.10.0", "v2.0.0-beta"]


class TestHelpers:
    """Tests for major/is_canonical."""

    def test_major(self):
        """Test major version prefix."""
        assert semver.major("v2.3.4") == "v2"
        assert semver.major("v0.1.0") == "v0"

    def test_is_canonical(self):
        """Test canonical form detection."""
        assert semver.is_canonical("v1.0.0")
        assert semver.is_canonical("v2.0.0+incompatible")
        assert not semver.is_canonical("v1.0.0+build")
        assert not semver.is_canonical("v1.0")
