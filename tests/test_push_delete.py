"""
Integration tests for push and delete against a local feed.

Each test drives the command functions end to end and then reads the
committed documents back from disk.
"""

import pytest

from conftest import build_nupkg, fresh_context, read_feed_json
from sleet.commands.delete import run_delete
from sleet.commands.push import run_push
from sleet.commands.validate import run_validate
from sleet.core.errors import DuplicatePackageError, PackageExistsError, PackageNotFoundError, SleetError
from sleet.domain.models import SleetOperation
from sleet.domain.versioning import PackageIdentity
from sleet.services.autocomplete import AutoComplete
from sleet.services.catalog import Catalog
from sleet.services.flat_container import FlatContainer
from sleet.services.package_index import PackageIndex
from sleet.services.registrations import Registrations
from sleet.services.search import Search


async def push(settings, file_system, packages_dir, *packages, **kwargs):
    paths = [build_nupkg(packages_dir, package_id, version) for package_id, version in packages]
    return await run_push(settings, file_system, [str(p) for p in paths], **kwargs)


class TestPushScenario:
    """Test suite for a single package pushed and deleted"""

    @pytest.mark.asyncio
    async def test_push_then_delete(self, settings, catalog_feed, feed_root, packages_dir):
        """Should populate every service on push and empty them all on delete"""
        identity = PackageIdentity("packageA", "1.0.0")
        await push(settings, catalog_feed, packages_dir, ("packageA", "1.0.0"))

        context = await fresh_context(settings, catalog_feed)
        assert await PackageIndex(context).get_packages() == {identity}

        entries = await Catalog(context).get_index_entries()
        assert len(entries) == 1
        assert entries[0].operation == SleetOperation.ADD
        assert entries[0].package == identity

        registration = read_feed_json(feed_root, "registration/packagea/index.json")
        assert registration["count"] == 1
        assert len(registration["items"][0]["items"]) == 1
        assert (feed_root / "registration/packagea/1.0.0.json").is_file()

        assert read_feed_json(feed_root, "flatcontainer/packagea/index.json") == {"versions": ["1.0.0"]}
        assert (feed_root / "flatcontainer/packagea/1.0.0/packagea.1.0.0.nupkg").is_file()
        assert (feed_root / "flatcontainer/packagea/1.0.0/packagea.nuspec").is_file()

        search = read_feed_json(feed_root, "search/query")
        assert len(search["data"]) == 1
        assert [v["version"] for v in search["data"][0]["versions"]] == ["1.0.0"]
        assert read_feed_json(feed_root, "autocomplete/query")["data"] == ["packageA"]

        await run_delete(settings, catalog_feed, "packageA", "1.0.0")

        context = await fresh_context(settings, catalog_feed)
        assert await PackageIndex(context).get_packages() == set()
        assert await Catalog(context).get_packages() == set()
        assert not (feed_root / "registration/packagea").exists()
        assert not (feed_root / "flatcontainer/packagea").exists()
        assert read_feed_json(feed_root, "search/query")["data"] == []
        assert read_feed_json(feed_root, "autocomplete/query")["data"] == []
        assert await run_validate(settings, catalog_feed)

    @pytest.mark.asyncio
    async def test_two_versions(self, settings, feed, feed_root, packages_dir):
        """Should show the latest metadata with every version listed"""
        build_nupkg(packages_dir / "v1", "packageA", "1.0.0", description="first")
        build_nupkg(packages_dir / "v2", "packageA", "2.0.0", description="second")
        await run_push(settings, feed, [str(packages_dir / "v1")])
        await run_push(settings, feed, [str(packages_dir / "v2")])

        data = read_feed_json(feed_root, "search/query")["data"]
        assert len(data) == 1
        assert data[0]["description"] == "second"
        assert data[0]["version"] == "2.0.0"
        assert [v["version"] for v in data[0]["versions"]] == ["1.0.0", "2.0.0"]
        assert read_feed_json(feed_root, "flatcontainer/packagea/index.json")["versions"] == ["1.0.0", "2.0.0"]

        # Removing the latest falls back to the metadata stored with 1.0.0.
        await run_delete(settings, feed, "packageA", "2.0.0")
        data = read_feed_json(feed_root, "search/query")["data"]
        assert data[0]["description"] == "first"
        assert [v["version"] for v in data[0]["versions"]] == ["1.0.0"]
        assert await run_validate(settings, feed)

    @pytest.mark.asyncio
    async def test_round_trip(self, settings, catalog_feed, feed_root, packages_dir):
        """Should return every service to its empty state after removing all adds"""
        await push(settings, catalog_feed, packages_dir, ("a", "1.0.0"), ("a", "2.0.0"), ("b", "1.0.0-beta"), ("C", "3.0.0"))
        assert await run_validate(settings, catalog_feed)

        for package_id in ("a", "b", "c"):
            await run_delete(settings, catalog_feed, package_id)

        context = await fresh_context(settings, catalog_feed)
        assert await PackageIndex(context).is_empty()
        assert await Catalog(context).get_packages() == set()
        assert await Search(context).get_packages() == set()
        assert await AutoComplete(context).get_package_ids() == []
        for package_id in ("a", "b", "c"):
            assert await Registrations(context).get_packages_by_id(package_id) == set()
            assert await FlatContainer(context).get_packages_by_id(package_id) == set()
        assert await run_validate(settings, catalog_feed)


class TestPushRules:
    """Test suite for duplicates, existing packages and case handling"""

    @pytest.mark.asyncio
    async def test_case_insensitive_lookups(self, settings, catalog_feed, packages_dir):
        """Should find a package by id in any case in every service"""
        identity = PackageIdentity("PackageA", "1.0.0")
        await push(settings, catalog_feed, packages_dir, ("PackageA", "1.0.0"))

        context = await fresh_context(settings, catalog_feed)
        for package_id in ("packagea", "PACKAGEA", "PackageA"):
            assert await PackageIndex(context).get_packages_by_id(package_id) == {identity}
            assert await Catalog(context).get_packages_by_id(package_id) == {identity}
            assert await Registrations(context).get_packages_by_id(package_id) == {identity}
            assert await FlatContainer(context).get_packages_by_id(package_id) == {identity}

    @pytest.mark.asyncio
    async def test_duplicate_in_batch_rejected(self, settings, feed, feed_root, packages_dir):
        """Should fail without committing when a batch repeats an identity"""
        first = build_nupkg(packages_dir / "one", "a", "1.0.0")
        second = build_nupkg(packages_dir / "two", "A", "1.0")

        with pytest.raises(DuplicatePackageError):
            await run_push(settings, feed, [str(first), str(second)])

        context = await fresh_context(settings, feed)
        assert await PackageIndex(context).is_empty()
        assert not (feed_root / "flatcontainer").exists()
        assert not (feed_root / ".lock").exists()

    @pytest.mark.asyncio
    async def test_existing_package(self, settings, feed, packages_dir):
        """Should reject an existing package unless skipped or forced"""
        await push(settings, feed, packages_dir, ("a", "1.0.0"))

        with pytest.raises(PackageExistsError):
            await push(settings, feed, packages_dir, ("a", "1.0.0"))

        await push(settings, feed, packages_dir, ("a", "1.0.0"), skip_existing=True)
        await push(settings, feed, packages_dir, ("a", "1.0.0"), force=True)

        context = await fresh_context(settings, feed)
        assert await PackageIndex(context).get_packages() == {PackageIdentity("a", "1.0.0")}
        assert await run_validate(settings, feed)

    @pytest.mark.asyncio
    async def test_force_replaces_files(self, settings, catalog_feed, feed_root, packages_dir):
        """Should overwrite the nupkg and record a remove and an add"""
        build_nupkg(packages_dir / "old", "a", "1.0.0", description="old")
        build_nupkg(packages_dir / "new", "a", "1.0.0", description="new")
        await run_push(settings, catalog_feed, [str(packages_dir / "old")])
        await run_push(settings, catalog_feed, [str(packages_dir / "new")], force=True)

        nuspec = (feed_root / "flatcontainer/a/1.0.0/a.nuspec").read_text()
        assert "<description>new</description>" in nuspec
        context = await fresh_context(settings, catalog_feed)
        operations = [e.operation for e in await Catalog(context).get_index_entries()]
        assert sorted(operations) == [SleetOperation.ADD, SleetOperation.ADD, SleetOperation.REMOVE]
        assert await Catalog(context).exists(PackageIdentity("a", "1.0.0"))
        assert await run_validate(settings, catalog_feed)

    @pytest.mark.asyncio
    async def test_force_updates_search_metadata(self, settings, feed, feed_root, packages_dir):
        """Should rebuild the search entry with the metadata of the replaced package"""
        build_nupkg(packages_dir / "old", "a", "1.0.0", description="old")
        build_nupkg(packages_dir / "new", "a", "1.0.0", description="new")
        await run_push(settings, feed, [str(packages_dir / "old")])
        await run_push(settings, feed, [str(packages_dir / "new")], force=True)

        context = await fresh_context(settings, feed)
        entry = await Registrations(context).get_catalog_entry(PackageIdentity("a", "1.0.0"))
        data = read_feed_json(feed_root, "search/query")["data"]
        assert entry["description"] == "new"
        assert data[0]["description"] == "new"
        assert [v["version"] for v in data[0]["versions"]] == ["1.0.0"]

    @pytest.mark.asyncio
    async def test_push_requires_init(self, settings, file_system, packages_dir):
        """Should refuse to push to a feed that was never initialized"""
        with pytest.raises(SleetError):
            await push(settings, file_system, packages_dir, ("a", "1.0.0"))


class TestDelete:
    """Test suite for delete"""

    @pytest.mark.asyncio
    async def test_search_disappearance(self, settings, feed, feed_root, packages_dir):
        """Should drop the id from search and autocomplete and restore it on push"""
        await push(settings, feed, packages_dir, ("a", "1.0.0"), ("b", "1.0.0"))
        await run_delete(settings, feed, "a", "1.0.0")

        ids = [e["id"] for e in read_feed_json(feed_root, "search/query")["data"]]
        assert ids == ["b"]
        assert read_feed_json(feed_root, "autocomplete/query")["data"] == ["b"]

        await push(settings, feed, packages_dir, ("a", "1.0.0"))
        ids = [e["id"] for e in read_feed_json(feed_root, "search/query")["data"]]
        assert ids == ["a", "b"]
        assert read_feed_json(feed_root, "autocomplete/query")["data"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_delete_all_versions(self, settings, feed, packages_dir):
        """Should remove every version when no version is given"""
        await push(settings, feed, packages_dir, ("a", "1.0.0"), ("a", "2.0.0"), ("b", "1.0.0"))
        await run_delete(settings, feed, "A")

        context = await fresh_context(settings, feed)
        assert await PackageIndex(context).get_packages() == {PackageIdentity("b", "1.0.0")}
        assert await run_validate(settings, feed)

    @pytest.mark.asyncio
    async def test_delete_missing(self, settings, feed):
        """Should fail for a missing package unless forced"""
        with pytest.raises(PackageNotFoundError):
            await run_delete(settings, feed, "a", "1.0.0")
        assert await run_delete(settings, feed, "a", "1.0.0", force=True)

    @pytest.mark.asyncio
    async def test_delete_invalid_version(self, settings, feed):
        """Should reject a version that cannot be parsed"""
        with pytest.raises(SleetError):
            await run_delete(settings, feed, "a", "not-a-version")

    @pytest.mark.asyncio
    async def test_delete_reason_in_catalog(self, settings, catalog_feed, packages_dir):
        """Should store the reason in the delete details"""
        await push(settings, catalog_feed, packages_dir, ("a", "1.0.0"))
        await run_delete(settings, catalog_feed, "a", "1.0.0", reason="broken build")

        context = await fresh_context(settings, catalog_feed)
        latest = await Catalog(context).get_latest_entry(PackageIdentity("a", "1.0.0"))
        assert latest.operation == SleetOperation.REMOVE
        details = await context.file_system.get_by_uri(latest.details_uri).get_json()
        assert details["sleet:removeReason"] == "broken build"
