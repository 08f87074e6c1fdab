"""
Unit tests for nuspec parsing and package loading.
"""

import zipfile

import pytest

from conftest import build_nupkg, build_nuspec
from sleet.core.errors import DataIntegrityError
from sleet.data.package_input import PackageInput, get_package_files, load_package, load_packages
from sleet.domain.nuspec import normalize_range, parse_nuspec
from sleet.domain.versioning import PackageIdentity


class TestParseNuspec:
    """Test suite for nuspec parsing"""

    def test_metadata(self):
        """Should read id, version and text properties"""
        nuspec = parse_nuspec(build_nuspec("PackageA", "1.0.0-beta", authors="a, b", tags="x y").encode())
        assert nuspec.identity == PackageIdentity("PackageA", "1.0.0-beta")
        assert nuspec.get("authors") == "a, b"
        assert nuspec.tags == ["x", "y"]
        assert nuspec.get("missing") == ""

    def test_dependencies(self):
        """Should read loose dependencies with bare versions as minimum ranges"""
        nuspec = parse_nuspec(build_nuspec("a", "1.0.0", dependencies=[("b", "2.0"), ("c", "[1.0, 2.0)")]).encode())
        dependencies = nuspec.dependency_groups[0].dependencies
        assert [(d.id, d.range) for d in dependencies] == [("b", "[2.0.0, )"), ("c", "[1.0, 2.0)")]

    def test_normalize_range(self):
        """Should leave ranges alone"""
        assert normalize_range(None) is None
        assert normalize_range("1.0") == "[1.0.0, )"
        assert normalize_range("(1.0,]") == "(1.0,]"

    @pytest.mark.parametrize(
        "content",
        [
            b"not xml",
            b"<package></package>",
            b"<package><metadata><version>1.0.0</version></metadata></package>",
            b"<package><metadata><id>a</id><version>bad</version></metadata></package>",
        ],
    )
    def test_invalid(self, content):
        """Should raise a data integrity error for unusable nuspecs"""
        with pytest.raises(DataIntegrityError):
            parse_nuspec(content)


class TestLoadPackage:
    """Test suite for reading nupkg files"""

    def test_load(self, packages_dir):
        """Should read the identity, nuspec and entries"""
        package = load_package(build_nupkg(packages_dir, "PackageA", "1.0.0"))
        assert package.identity == PackageIdentity("PackageA", "1.0.0")
        assert not package.is_symbols_package
        assert {e.full_name for e in package.entries} == {"PackageA.nuspec", "lib/net45/a.dll"}
        assert package.get_size() > 0
        assert len(package.get_hash()) == 88

    def test_symbols_detected_from_name(self, packages_dir):
        """Should flag .symbols.nupkg files"""
        package = load_package(build_nupkg(packages_dir, "a", "1.0.0", symbols=True))
        assert package.is_symbols_package

    def test_missing_nuspec(self, packages_dir):
        """Should reject a package without a nuspec"""
        path = packages_dir / "a.1.0.0.nupkg"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("lib/a.dll", b"x")
        with pytest.raises(DataIntegrityError):
            load_package(path)

    def test_misnamed_nuspec(self, packages_dir):
        """Should require the nuspec to be named after the id"""
        path = build_nupkg(packages_dir, "a", "1.0.0", nuspec_name="other.nuspec")
        with pytest.raises(DataIntegrityError):
            load_package(path)

    def test_not_a_zip(self, packages_dir):
        """Should reject files that are not zips"""
        path = packages_dir / "a.1.0.0.nupkg"
        path.write_bytes(b"nope")
        with pytest.raises(DataIntegrityError):
            load_package(path)

    def test_get_package_files(self, packages_dir, tmp_path):
        """Should expand directories and fail on missing paths"""
        build_nupkg(packages_dir, "a", "1.0.0")
        build_nupkg(packages_dir / "nested", "b", "1.0.0")
        (packages_dir / "readme.txt").write_text("x")
        files = get_package_files([packages_dir])
        assert [f.name for f in files] == ["a.1.0.0.nupkg", "b.1.0.0.nupkg"]
        with pytest.raises(FileNotFoundError):
            get_package_files([tmp_path / "missing.nupkg"])

    @pytest.mark.asyncio
    async def test_load_packages_sorted(self, packages_dir):
        """Should load in parallel and return inputs sorted"""
        paths = [build_nupkg(packages_dir, "b", "1.0.0"), build_nupkg(packages_dir, "a", "2.0.0"), build_nupkg(packages_dir, "a", "1.0.0")]
        packages = await load_packages(paths, max_workers=2)
        assert [str(p) for p in packages] == ["a 1.0.0", "a 2.0.0", "b 1.0.0"]


class TestPackageInput:
    """Test suite for PackageInput identity semantics"""

    def test_symbols_flag_part_of_equality(self):
        """Should treat a symbols package as distinct from the package"""
        identity = PackageIdentity("a", "1.0.0")
        assert PackageInput(identity) != PackageInput(identity, is_symbols_package=True)
        assert PackageInput(identity) < PackageInput(identity, is_symbols_package=True)

    def test_create_for_delete(self):
        """Should carry the reason and no file"""
        package = PackageInput.create_for_delete(PackageIdentity("a", "1.0.0"), reason="old")
        assert package.remove_reason == "old"
        assert not package.has_file
        with pytest.raises(DataIntegrityError):
            package.read_bytes()
