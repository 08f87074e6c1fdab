"""
init: write the documents an empty feed needs.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from sleet.core.context import SleetContext
from sleet.core.errors import SleetError
from sleet.data import templates
from sleet.domain import feed_paths
from sleet.domain.models import FeedSettings, LocalSettings
from sleet.services.external_search import ExternalSearchHandler
from sleet.services.feed_settings import create_settings_file
from sleet.services.package_index import PackageIndex
from sleet.storage.file_system import FeedFileSystem
from sleet.commands.source import feed_lock

logger = logging.getLogger(__name__)


async def _create_if_missing(file_system: FeedFileSystem, path: str, build: Callable[[], Dict[str, Any]]) -> bool:
    handle = file_system.get(path)
    if await handle.exists():
        return False
    logger.debug(f"Creating {path}")
    await handle.write_json(build())
    return True


async def init_feed(context: SleetContext) -> bool:
    """Create missing feed files without committing. Returns True if anything was written."""
    fs = context.file_system
    now = context.now
    base = fs.base_uri

    changed = await _create_if_missing(fs, feed_paths.FEED_SETTINGS, lambda: create_settings_file(fs, now, context.feed_settings))
    created_index = await _create_if_missing(fs, feed_paths.SERVICE_INDEX, lambda: templates.service_index(base, now))
    changed |= created_index
    changed |= await _create_if_missing(fs, feed_paths.CATALOG_INDEX, lambda: templates.catalog_index(base, now, context.commit_id))
    changed |= await _create_if_missing(fs, feed_paths.AUTOCOMPLETE_QUERY, templates.autocomplete_query)
    changed |= await _create_if_missing(fs, feed_paths.SEARCH_QUERY, lambda: templates.search_query(base, now))
    changed |= await PackageIndex(context).init()

    external_search = context.feed_settings.external_search
    if created_index and external_search:
        await ExternalSearchHandler(fs).set(external_search)
    return changed


async def run_init(
    settings: LocalSettings,
    file_system: FeedFileSystem,
    feed_settings: Optional[FeedSettings] = None,
) -> bool:
    if not await file_system.validate():
        return False

    logger.info(f"Initializing {file_system.base_uri}")
    async with feed_lock(settings, file_system, "Init"):
        context = SleetContext.create(file_system, feed_settings or FeedSettings(), settings)
        if not await init_feed(context):
            raise SleetError("Source is already initialized. No actions taken.")
        await file_system.commit()

    logger.info(f"Successfully initialized {file_system.base_uri}")
    return True
