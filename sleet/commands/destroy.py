"""
destroy: delete every file of the feed except the lock.
"""
from __future__ import annotations

import logging

from sleet.commands.source import feed_lock
from sleet.domain.models import LocalSettings
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


async def run_destroy(settings: LocalSettings, file_system: FeedFileSystem) -> bool:
    if not await file_system.validate():
        return False
    async with feed_lock(settings, file_system, "Destroy"):
        logger.info(f"Removing all files from {file_system.base_uri}")
        result = await file_system.destroy()
    if result:
        logger.info(f"Successfully removed all files from {file_system.base_uri}")
    return result
