"""
delete: remove one version, or every version, of a package id.
"""
from __future__ import annotations

import logging
from typing import Optional

from sleet.commands.source import verify_init_and_lock
from sleet.core.context import SleetContext
from sleet.core.errors import PackageNotFoundError, SleetError
from sleet.domain.models import LocalSettings
from sleet.domain.versioning import NuGetVersion, PackageIdentity
from sleet.services.dispatch import apply_package_changes
from sleet.services.operations import SleetOperations
from sleet.services.package_index import PackageIndex
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


async def delete_packages(
    context: SleetContext,
    package_id: str,
    version: Optional[str] = None,
    reason: Optional[str] = None,
    force: bool = False,
) -> bool:
    """Remove packages from the feed files without committing. False if nothing matched."""
    existing = await PackageIndex(context).get_package_sets()

    if version:
        parsed = NuGetVersion.try_parse(version)
        if parsed is None:
            raise SleetError(f"Invalid version '{version}'")
        identity = PackageIdentity(package_id, parsed)
        packages = {identity} if existing.packages.exists(identity) else set()
        symbols = {identity} if existing.symbols.exists(identity) else set()
    else:
        packages = existing.packages.get_packages_by_id(package_id)
        symbols = existing.symbols.get_packages_by_id(package_id)

    if not packages and not symbols:
        if force:
            logger.info(f"Package {package_id} {version or ''} does not exist, nothing to delete.")
            return False
        raise PackageNotFoundError(package_id, version)

    operations = SleetOperations.create_delete(existing, packages, symbols, reason=reason)
    await apply_package_changes(context, operations)
    return True


async def run_delete(
    settings: LocalSettings,
    file_system: FeedFileSystem,
    package_id: str,
    version: Optional[str] = None,
    reason: Optional[str] = None,
    force: bool = False,
) -> bool:
    async with verify_init_and_lock(settings, file_system, "Delete") as context:
        if await delete_packages(context, package_id, version, reason, force):
            await file_system.commit()
            logger.info(f"Successfully deleted packages from {file_system.base_uri}")
    return True
