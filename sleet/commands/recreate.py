"""
recreate: rebuild every feed document from the packages on the feed.

download -> destroy -> init -> push -> validate, all under one lock.
"""
from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from sleet.commands.download import download_packages
from sleet.commands.init import init_feed
from sleet.commands.push import push_packages
from sleet.commands.source import create_context, verify_init_and_lock
from sleet.core.context import SleetContext
from sleet.data.package_input import get_package_files, load_packages
from sleet.domain.models import LocalSettings
from sleet.services.feed_settings import get_settings_values, save_values
from sleet.services.validation import validate_feed
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


async def run_recreate(settings: LocalSettings, file_system: FeedFileSystem, force: bool = False) -> bool:
    """force continues past packages that can no longer be downloaded."""
    with tempfile.TemporaryDirectory(prefix="sleet-recreate-") as tmp:
        work_dir = Path(tmp)
        async with verify_init_and_lock(settings, file_system, "Recreate") as context:
            # Keep unknown keys as well as the ones FeedSettings understands.
            setting_values = await get_settings_values(file_system)

            logger.info("Downloading all packages")
            if not await download_packages(context, work_dir, ignore_errors=force):
                logger.warning("Some packages could not be downloaded and will be missing from the recreated feed.")

            packages = await load_packages(get_package_files([work_dir]))

            logger.info(f"Removing all files from {file_system.base_uri}")
            await file_system.destroy()

            new_context = SleetContext.create(file_system, context.feed_settings, settings)
            await init_feed(new_context)
            await save_values(file_system, setting_values)
            await push_packages(new_context, packages)
            await file_system.commit()

            file_system.reset()
            results = await validate_feed(await create_context(settings, file_system))

    valid = not any(results.values())
    if valid:
        logger.info(f"Successfully recreated {file_system.base_uri}")
    return valid
