"""
stats: package counts of a feed.
"""
from __future__ import annotations

import logging

from sleet.commands.source import verify_init_and_lock
from sleet.core.context import SleetContext
from sleet.domain.models import FeedStats, LocalSettings
from sleet.services.catalog import Catalog
from sleet.services.package_index import PackageIndex
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


async def get_stats(context: SleetContext) -> FeedStats:
    sets = await PackageIndex(context).get_package_sets()
    stats = FeedStats(
        packages=len(sets.packages),
        unique_ids=len(sets.packages.get_package_ids()),
        symbols_packages=len(sets.symbols),
    )
    if context.feed_settings.catalog_enabled:
        stats.catalog_entries = len(await Catalog(context).get_index_entries())
    return stats


async def run_stats(settings: LocalSettings, file_system: FeedFileSystem) -> FeedStats:
    async with verify_init_and_lock(settings, file_system, "Stats") as context:
        stats = await get_stats(context)

    if stats.catalog_entries is not None:
        logger.info(f"Catalog entries: {stats.catalog_entries}")
    logger.info(f"Packages: {stats.packages}")
    logger.info(f"Unique package ids: {stats.unique_ids}")
    if stats.symbols_packages:
        logger.info(f"Symbols packages: {stats.symbols_packages}")
    return stats
