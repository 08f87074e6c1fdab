"""
prune: apply the retention limits and remove old versions.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Set

from sleet.commands.source import verify_init_and_lock
from sleet.core.context import SleetContext
from sleet.core.errors import ConfigurationError
from sleet.domain.models import LocalSettings
from sleet.domain.versioning import NuGetVersion, PackageIdentity
from sleet.services.dispatch import apply_package_changes
from sleet.services.operations import SleetOperations
from sleet.services.package_index import PackageIndex
from sleet.services.retention import get_packages_to_prune, resolve_package_sets
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


def parse_pinned(values: Iterable[str]) -> Set[PackageIdentity]:
    """Pinned packages are given as id@version."""
    pinned = set()
    for value in values:
        package_id, sep, version = value.partition("@")
        parsed = NuGetVersion.try_parse(version)
        if not sep or not package_id or parsed is None:
            raise ConfigurationError(f"Invalid pinned package '{value}', expected id@version")
        pinned.add(PackageIdentity(package_id, parsed))
    return pinned


async def prune_packages(
    context: SleetContext,
    stable_max: Optional[int] = None,
    prerelease_max: Optional[int] = None,
    release_label_count: Optional[int] = None,
    pinned: Iterable[PackageIdentity] = (),
    dry_run: bool = False,
) -> Set[PackageIdentity]:
    """Remove pruned packages from the feed files without committing."""
    settings = context.feed_settings
    stable = stable_max if stable_max is not None else settings.retention_max_stable_versions
    prerelease = prerelease_max if prerelease_max is not None else settings.retention_max_prerelease_versions
    if stable is None or stable < 1:
        raise ConfigurationError("Package retention must specify a maximum number of stable versions that is > 0")
    if prerelease is None or prerelease < 1:
        raise ConfigurationError("Package retention must specify a maximum number of prerelease versions that is > 0")

    existing = await PackageIndex(context).get_package_sets()
    to_prune = get_packages_to_prune(resolve_package_sets(existing), pinned, stable, prerelease, release_label_count)

    packages = {p for p in to_prune if existing.packages.exists(p)}
    symbols = {p for p in to_prune if existing.symbols.exists(p)}
    for package in sorted(to_prune):
        logger.info(f"Pruning {package}")

    if not to_prune:
        logger.info("No packages need pruning.")
    elif not dry_run:
        operations = SleetOperations.create_delete(existing, packages, symbols, reason="Removed by retention")
        await apply_package_changes(context, operations)
    return to_prune


async def run_prune(
    settings: LocalSettings,
    file_system: FeedFileSystem,
    stable_max: Optional[int] = None,
    prerelease_max: Optional[int] = None,
    release_label_count: Optional[int] = None,
    pinned: Iterable[str] = (),
    dry_run: bool = False,
) -> bool:
    pinned_packages = parse_pinned(pinned)
    logger.info(f"Pruning packages in {file_system.base_uri}")
    async with verify_init_and_lock(settings, file_system, "Prune") as context:
        pruned = await prune_packages(context, stable_max, prerelease_max, release_label_count, pinned_packages, dry_run)
        if pruned and not dry_run:
            await file_system.commit()
            logger.info("Successfully pruned packages.")
    return True
