"""
Feed settings that change other documents when set or unset.

`externalsearch` points the SearchQueryService resources of index.json at
another search service. Unsetting it points them back at the feed's own
search/query document.
"""
from __future__ import annotations

import logging
from typing import Dict

from sleet.domain import feed_paths
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)

SEARCH_RESOURCE_TYPE = "SearchQueryService"


class ExternalSearchHandler:
    name = "externalsearch"

    def __init__(self, file_system: FeedFileSystem):
        self.file_system = file_system

    @property
    def default_uri(self) -> str:
        return self.file_system.get_entity_uri(feed_paths.SEARCH_QUERY)

    async def set(self, value: str) -> None:
        await self.set_search_uri(value)

    async def unset(self) -> None:
        await self.set_search_uri(self.default_uri)

    async def set_search_uri(self, uri: str) -> None:
        index_file = self.file_system.get(feed_paths.SERVICE_INDEX)
        json = await index_file.get_json()
        for resource in json.get("resources", []):
            if str(resource.get("@type", "")).startswith(SEARCH_RESOURCE_TYPE):
                resource["@id"] = uri
        logger.info(f"Search service set to {uri}")
        await index_file.write_json(json)


def get_setting_handlers(file_system: FeedFileSystem) -> Dict[str, ExternalSearchHandler]:
    handler = ExternalSearchHandler(file_system)
    return {handler.name: handler}
