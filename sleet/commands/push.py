"""
push: add packages to the feed.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, List, Sequence

from sleet.commands.source import verify_init_and_lock
from sleet.core.context import SleetContext
from sleet.core.errors import DuplicatePackageError, PackageExistsError
from sleet.data.package_input import PackageInput, get_package_files, load_packages
from sleet.domain.models import LocalSettings
from sleet.services.dispatch import apply_package_changes
from sleet.services.operations import SleetOperations
from sleet.services.package_index import PackageIndex
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


def check_duplicates(packages: Sequence[PackageInput]) -> None:
    counts = Counter(packages)
    duplicates = sorted(p for p, count in counts.items() if count > 1)
    if duplicates:
        names = ", ".join(str(p) for p in duplicates)
        raise DuplicatePackageError(f"Duplicate packages detected for {names}")


async def push_packages(
    context: SleetContext,
    packages: Sequence[PackageInput],
    force: bool = False,
    skip_existing: bool = False,
) -> SleetOperations:
    """Add packages to the feed files without committing."""
    check_duplicates(packages)

    existing = await PackageIndex(context).get_package_sets()
    to_add: List[PackageInput] = []
    to_remove: List[PackageInput] = []

    for package in packages:
        if package.is_symbols_package and not context.feed_settings.symbols_feed_enabled:
            logger.warning(f"Skipping {package}, symbols packages are not enabled on this feed.")
            continue

        if existing.get(package.is_symbols_package).exists(package.identity):
            if skip_existing:
                logger.info(f"Skip existing package: {package}")
                continue
            if not force:
                raise PackageExistsError(f"Package already exists: {package}")
            logger.info(f"Replacing existing package: {package}")
            to_remove.append(PackageInput.create_for_delete(package.identity, package.is_symbols_package, reason="Replaced by push --force"))
        to_add.append(package)

    operations = SleetOperations.create(existing, to_add, to_remove)
    if operations.has_changes:
        await apply_package_changes(context, operations)
    else:
        logger.info("No packages to push.")
    return operations


async def run_push(
    settings: LocalSettings,
    file_system: FeedFileSystem,
    inputs: Iterable[str],
    force: bool = False,
    skip_existing: bool = False,
) -> bool:
    # Packages are read before the lock is taken.
    files = get_package_files(inputs)
    logger.info(f"Reading {len(files)} packages")
    packages = await load_packages(files)

    async with verify_init_and_lock(settings, file_system, "Push") as context:
        logger.info(f"Pushing {len(packages)} packages to {file_system.base_uri}")
        await push_packages(context, packages, force=force, skip_existing=skip_existing)
        await file_system.commit()

    logger.info(f"Successfully pushed packages to {file_system.base_uri}")
    return True
