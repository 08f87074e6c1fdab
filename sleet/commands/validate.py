"""
validate: check every service against the package index.
"""
from __future__ import annotations

import logging

from sleet.commands.source import verify_init_and_lock
from sleet.domain.models import LocalSettings
from sleet.services.validation import validate_feed
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


async def run_validate(settings: LocalSettings, file_system: FeedFileSystem) -> bool:
    """True when the feed is consistent. Nothing is written."""
    logger.info(f"Validating {file_system.base_uri}")
    async with verify_init_and_lock(settings, file_system, "Validate") as context:
        results = await validate_feed(context)
    return not any(results.values())
