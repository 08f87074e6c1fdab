"""
Unit tests for PackageSet and PackageSets.
"""

from sleet.domain.package_set import PackageSet, PackageSets
from sleet.domain.versioning import PackageIdentity


def identity(package_id, version):
    return PackageIdentity(package_id, version)


class TestPackageSet:
    """Test suite for the in-memory package index"""

    def test_add_and_remove_report_changes(self):
        """Should return False when nothing changed"""
        packages = PackageSet()
        assert packages.add(identity("a", "1.0.0"))
        assert not packages.add(identity("A", "1.0.0"))
        assert packages.remove(identity("a", "1.0.0"))
        assert not packages.remove(identity("a", "1.0.0"))
        assert len(packages) == 0
        assert not packages.exists_id("a")

    def test_lookup_by_id_ignores_case(self):
        """Should find packages by id in any case"""
        packages = PackageSet([identity("PackageA", "1.0.0"), identity("PackageA", "2.0.0"), identity("b", "1.0.0")])
        assert packages.get_packages_by_id("PACKAGEA") == {identity("packagea", "1.0.0"), identity("packagea", "2.0.0")}
        assert [str(v) for v in packages.get_versions("packagea")] == ["1.0.0", "2.0.0"]

    def test_package_ids_sorted(self):
        """Should list ids case-insensitively sorted"""
        packages = PackageSet([identity("b", "1.0.0"), identity("A", "1.0.0"), identity("c", "1.0.0")])
        assert packages.get_package_ids() == ["A", "b", "c"]

    def test_json_round_trip(self):
        """Should write versions descending and read them back"""
        packages = PackageSet([identity("a", "1.0.0"), identity("a", "2.0.0-beta"), identity("B", "1.0.0")])
        json = packages.to_json()
        assert json == {"a": ["2.0.0-beta", "1.0.0"], "B": ["1.0.0"]}
        assert PackageSet.from_json(json) == packages

    def test_clone_is_independent(self):
        """Should not share state with the clone"""
        packages = PackageSet([identity("a", "1.0.0")])
        copy = packages.clone()
        copy.add(identity("a", "2.0.0"))
        assert len(packages) == 1
        assert len(copy) == 2


class TestPackageSets:
    """Test suite for the normal/symbols pair"""

    def test_get_selects_set(self):
        """Should return the symbols set only when asked"""
        sets = PackageSets()
        sets.get(True).add(identity("a", "1.0.0"))
        assert len(sets.symbols) == 1
        assert len(sets.packages) == 0
        assert sets.all_packages() == {identity("a", "1.0.0")}

    def test_equality(self):
        """Should compare both sets"""
        a = PackageSets(PackageSet([identity("a", "1.0.0")]))
        b = a.clone()
        assert a == b
        b.symbols.add(identity("a", "1.0.0"))
        assert a != b
