"""
Tests for retention and the prune command.
"""

import pytest

from conftest import build_nupkg, fresh_context
from sleet.commands.feed_settings import run_feed_settings
from sleet.commands.prune import parse_pinned, run_prune
from sleet.commands.push import run_push
from sleet.commands.validate import run_validate
from sleet.core.errors import ConfigurationError
from sleet.domain.versioning import PackageIdentity
from sleet.services.package_index import PackageIndex
from sleet.services.retention import get_packages_to_prune


def identities(package_id, *versions):
    return [PackageIdentity(package_id, v) for v in versions]


class TestGetPackagesToPrune:
    """Test suite for version selection"""

    def test_limits(self):
        """Should keep the newest stable and prerelease versions per id"""
        packages = identities("a", "1.0.0", "2.0.0", "3.0.0", "4.0.0-beta", "4.0.0-rc") + identities("b", "1.0.0")
        pruned = get_packages_to_prune(packages, [], stable_version_max=2, prerelease_version_max=1)
        assert pruned == {PackageIdentity("a", "1.0.0"), PackageIdentity("a", "4.0.0-beta")}

    def test_pinned_never_pruned(self):
        """Should keep pinned packages even past the limit"""
        packages = identities("a", "1.0.0", "2.0.0", "3.0.0")
        pruned = get_packages_to_prune(packages, [PackageIdentity("A", "1.0.0")], 1, 1)
        assert pruned == {PackageIdentity("a", "2.0.0")}

    def test_release_label_groups(self):
        """Should count prereleases per release label group"""
        packages = identities("a", "1.0.0-alpha.1", "1.0.0-alpha.2", "1.0.0-beta.1")
        pruned = get_packages_to_prune(packages, [], 1, 1, group_by_release_label_count=1)
        assert pruned == {PackageIdentity("a", "1.0.0-alpha.1")}

    def test_parse_pinned(self):
        """Should parse id@version values"""
        assert parse_pinned(["a@1.0"]) == {PackageIdentity("a", "1.0.0")}
        with pytest.raises(ConfigurationError):
            parse_pinned(["a"])
        with pytest.raises(ConfigurationError):
            parse_pinned(["a@bad"])


class TestPruneCommand:
    """Test suite for prune against a feed"""

    async def push_versions(self, settings, file_system, packages_dir, *versions):
        paths = [str(build_nupkg(packages_dir, "a", v)) for v in versions]
        await run_push(settings, file_system, paths)

    @pytest.mark.asyncio
    async def test_prune(self, settings, catalog_feed, packages_dir):
        """Should remove the old versions from every service"""
        await self.push_versions(settings, catalog_feed, packages_dir, "1.0.0", "2.0.0", "3.0.0")
        await run_prune(settings, catalog_feed, stable_max=1, prerelease_max=1)

        context = await fresh_context(settings, catalog_feed)
        assert await PackageIndex(context).get_packages() == {PackageIdentity("a", "3.0.0")}
        assert await run_validate(settings, catalog_feed)

    @pytest.mark.asyncio
    async def test_dry_run(self, settings, feed, packages_dir):
        """Should leave the feed unchanged"""
        await self.push_versions(settings, feed, packages_dir, "1.0.0", "2.0.0")
        await run_prune(settings, feed, stable_max=1, prerelease_max=1, dry_run=True)

        context = await fresh_context(settings, feed)
        assert len(await PackageIndex(context).get_packages()) == 2

    @pytest.mark.asyncio
    async def test_uses_feed_settings(self, settings, feed, packages_dir):
        """Should read the limits from the feed when none are given"""
        await self.push_versions(settings, feed, packages_dir, "1.0.0", "2.0.0", "3.0.0")
        await run_feed_settings(settings, feed, set_values=["retentionmaxstableversions:2", "retentionmaxprereleaseversions:1"])
        await run_prune(settings, feed)

        context = await fresh_context(settings, feed)
        assert await PackageIndex(context).get_packages() == set(identities("a", "2.0.0", "3.0.0"))

    @pytest.mark.asyncio
    async def test_requires_limits(self, settings, feed):
        """Should fail when no limits are configured"""
        with pytest.raises(ConfigurationError):
            await run_prune(settings, feed)
        with pytest.raises(ConfigurationError):
            await run_prune(settings, feed, stable_max=0, prerelease_max=1)
