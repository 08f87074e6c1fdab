"""
Autocomplete document (`autocomplete/query`): the sorted list of package ids.
"""
from __future__ import annotations

import logging
from typing import Iterable, List

from sleet.core.context import SleetContext
from sleet.domain import feed_paths
from sleet.domain.models import AutoCompleteDocument
from sleet.storage.file_system import FeedFile

logger = logging.getLogger(__name__)

MAX_RESULTS = 1024


def expected_ids(package_ids: Iterable[str]) -> List[str]:
    """Unique ids sorted case-insensitively, limited to MAX_RESULTS."""
    unique = {}
    for package_id in package_ids:
        if package_id:
            unique.setdefault(package_id.lower(), package_id)
    return [unique[key] for key in sorted(unique)][:MAX_RESULTS]


class AutoComplete:
    name = "AutoComplete"

    def __init__(self, context: SleetContext):
        self.context = context

    @property
    def index_file(self) -> FeedFile:
        return self.context.file_system.get(feed_paths.AUTOCOMPLETE_QUERY)

    async def get_package_ids(self) -> List[str]:
        json = await self.index_file.get_json_or_none()
        if json is None:
            return []
        return [i for i in AutoCompleteDocument.model_validate(json).data if i]

    async def create(self, package_ids: Iterable[str]) -> bool:
        """Rewrite the document, skipped when the id list is unchanged."""
        ids = expected_ids(package_ids)
        if await self.index_file.exists() and await self.get_package_ids() == ids:
            logger.debug("Autocomplete ids unchanged")
            return False

        document = AutoCompleteDocument(total_hits=len(ids), data=ids)
        await self.index_file.write_json(document.model_dump(by_alias=True))
        return True

    async def apply_operations(self, operations) -> None:
        await self.create(operations.updated_index.packages.get_package_ids())
