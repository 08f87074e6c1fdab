"""
Unit tests for package versions and identities.
"""

import pytest

from sleet.domain.versioning import NuGetVersion, PackageIdentity


class TestNuGetVersion:
    """Test suite for version parsing and ordering"""

    @pytest.mark.parametrize(
        "text,normalized",
        [
            ("1.0", "1.0.0"),
            ("1.0.0.0", "1.0.0"),
            ("1.0.0.4", "1.0.0.4"),
            ("1.0.0-Beta", "1.0.0-Beta"),
            ("2.1.3-rc.1+sha.abc", "2.1.3-rc.1"),
        ],
    )
    def test_normalized_string(self, text, normalized):
        """Should drop a zero revision and build metadata"""
        assert NuGetVersion.parse(text).to_normalized_string() == normalized

    def test_full_string_keeps_metadata(self):
        """Should keep build metadata in the full string"""
        assert NuGetVersion.parse("1.0.0-beta+build5").to_full_string() == "1.0.0-beta+build5"

    @pytest.mark.parametrize("text", ["", "abc", "1.0.0.0.0", "1.0-", "1.0.0+"])
    def test_invalid_versions(self, text):
        """Should reject strings that are not versions"""
        with pytest.raises(ValueError):
            NuGetVersion.parse(text)
        assert NuGetVersion.try_parse(text) is None

    def test_prerelease_sorts_before_release(self):
        """Should order a prerelease before its release"""
        assert NuGetVersion.parse("1.0.0-alpha") < NuGetVersion.parse("1.0.0")

    def test_label_ordering(self):
        """Should order numeric labels before alphanumeric ones and compare labels case-insensitively"""
        versions = [NuGetVersion.parse(v) for v in ["1.0.0-beta", "1.0.0-1", "1.0.0-Alpha", "1.0.0-beta.2", "1.0.0-beta.10"]]
        ordered = [v.to_normalized_string() for v in sorted(versions)]
        assert ordered == ["1.0.0-1", "1.0.0-Alpha", "1.0.0-beta", "1.0.0-beta.2", "1.0.0-beta.10"]

    def test_metadata_ignored_for_equality(self):
        """Should treat versions differing only in metadata as equal"""
        a = NuGetVersion.parse("1.0.0+a")
        b = NuGetVersion.parse("1.0.0+b")
        assert a == b
        assert hash(a) == hash(b)

    def test_is_prerelease(self):
        """Should report prerelease labels"""
        assert NuGetVersion.parse("1.0.0-beta").is_prerelease
        assert not NuGetVersion.parse("1.0.0").is_prerelease


class TestPackageIdentity:
    """Test suite for identities"""

    def test_case_insensitive_id(self):
        """Should compare ids without case"""
        assert PackageIdentity("PackageA", "1.0.0") == PackageIdentity("packagea", "1.0")
        assert len({PackageIdentity("PackageA", "1.0.0"), PackageIdentity("PACKAGEA", "1.0.0")}) == 1

    def test_ordering(self):
        """Should order by id, then version"""
        identities = [PackageIdentity("b", "1.0.0"), PackageIdentity("A", "2.0.0"), PackageIdentity("a", "1.0.0")]
        assert [str(i) for i in sorted(identities)] == ["a 1.0.0", "A 2.0.0", "b 1.0.0"]

    def test_empty_id_rejected(self):
        """Should reject an empty id"""
        with pytest.raises(ValueError):
            PackageIdentity("", "1.0.0")
