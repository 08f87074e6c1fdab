"""
feed-settings: read and change the settings stored on the feed.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable

from sleet.commands.source import verify_init_and_lock
from sleet.core.errors import ConfigurationError
from sleet.domain.models import LocalSettings
from sleet.services.external_search import get_setting_handlers
from sleet.services.feed_settings import get_settings_values, save_values
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


def parse_setting(value: str) -> tuple:
    key, sep, setting = value.partition(":")
    if not sep or not key.strip():
        raise ConfigurationError(f"Invalid setting '{value}', expected key:value")
    return key.strip().lower(), setting.strip()


async def run_feed_settings(
    settings: LocalSettings,
    file_system: FeedFileSystem,
    get_all: bool = False,
    unset_all: bool = False,
    unset: Iterable[str] = (),
    set_values: Iterable[str] = (),
) -> Dict[str, str]:
    updates = [parse_setting(v) for v in set_values]

    async with verify_init_and_lock(settings, file_system, "FeedSettings"):
        values = await get_settings_values(file_system)
        handlers = get_setting_handlers(file_system)
        unset_keys = set(values) if unset_all else {key.strip().lower() for key in unset}
        changed = False

        for key in sorted(unset_keys):
            if values.pop(key, None) is None:
                continue
            changed = True
            if key in handlers:
                await handlers[key].unset()
        for key, value in updates:
            values[key] = value
            changed = True
            if key in handlers:
                # An empty value is dropped on save, same as unset.
                await (handlers[key].set(value) if value else handlers[key].unset())

        if changed:
            await save_values(file_system, values)
            await file_system.commit()
            logger.info("Updated feed settings.")

    if get_all:
        for key in sorted(values):
            logger.info(f"{key} : {values[key]}")
    return values
