"""
Read and write the feed settings stored in `sleet.settings.json`.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from sleet.core.errors import FeedNotInitializedError
from sleet.data import templates
from sleet.domain import feed_paths
from sleet.domain.json_ld import get_date_string
from sleet.domain.models import FeedSettings
from sleet.storage.file_system import FeedFile, FeedFileSystem

logger = logging.getLogger(__name__)


def get_settings_file(file_system: FeedFileSystem) -> FeedFile:
    return file_system.get(feed_paths.FEED_SETTINGS)


def read_values(json: Dict[str, Any]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for entry in json.get("feedSettings") or []:
        key = str(entry.get("key") or "").lower()
        value = entry.get("value")
        if key and value not in (None, ""):
            values[key] = str(value)
    return values


def write_values(json: Dict[str, Any], values: Dict[str, str]) -> None:
    settings_uri = json.get("@id", "")
    entries: List[Dict[str, Any]] = []
    for key in sorted(values, key=str.lower):
        value = values[key]
        if not key or value in (None, ""):
            continue
        entries.append({"@id": f"{settings_uri}#{key.lower()}", "@type": "FeedSetting", "key": key.lower(), "value": value})
    json["feedSettings"] = entries
    json["lastEdited"] = get_date_string(datetime.now(timezone.utc))


async def get_settings_values(file_system: FeedFileSystem) -> Dict[str, str]:
    json = await get_settings_file(file_system).get_json_or_none()
    return read_values(json) if json is not None else {}


async def get_settings_or_default(file_system: FeedFileSystem) -> FeedSettings:
    json = await get_settings_file(file_system).get_json_or_none()
    if json is None:
        logger.debug("Unable to find feed settings, using defaults")
        return FeedSettings()
    return FeedSettings.from_values(read_values(json))


async def save_values(file_system: FeedFileSystem, values: Dict[str, str]) -> None:
    settings_file = get_settings_file(file_system)
    json = await settings_file.get_json_or_none()
    if json is None:
        raise FeedNotInitializedError(f"{settings_file.entity_uri} is missing. Run init first.")
    write_values(json, values)
    await settings_file.write_json(json)


async def save_settings(file_system: FeedFileSystem, settings: FeedSettings) -> None:
    values = await get_settings_values(file_system)
    values.update(settings.to_values())
    await save_values(file_system, values)


def create_settings_file(file_system: FeedFileSystem, now: datetime, settings: FeedSettings) -> Dict[str, Any]:
    json = templates.feed_settings_file(get_settings_file(file_system).entity_uri, now)
    write_values(json, settings.to_values())
    return json
