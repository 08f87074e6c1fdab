"""
The catalog: an append-only, paginated ledger of every add and remove.

Commits from one batch always land in a single page. A page that is already
full starts a new page, but a batch is never split, so a page can end up
larger than the configured page size.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from sleet.core.context import SleetContext
from sleet.core.errors import DataIntegrityError
from sleet.data import templates
from sleet.data.package_input import PackageInput
from sleet.domain import feed_paths
from sleet.domain.json_ld import get_date_string, parse_date
from sleet.domain.models import CatalogIndexEntry, SleetOperation
from sleet.domain.versioning import NuGetVersion, PackageIdentity
from sleet.services.catalog_details import create_commit, create_delete_details, create_package_details
from sleet.storage.file_system import FeedFile

logger = logging.getLogger(__name__)

_TYPE_OPERATIONS = {
    "nuget:PackageDetails": SleetOperation.ADD,
    "nuget:PackageDelete": SleetOperation.REMOVE,
}


def parse_operation(item: Dict[str, Any]) -> SleetOperation:
    value = item.get("sleet:operation")
    if value is None:
        # Older feeds only carry the commit type.
        operation = _TYPE_OPERATIONS.get(item.get("@type"))
        if operation is None:
            raise DataIntegrityError(f"Unable to determine the operation of catalog item {item.get('@id')}")
        return operation
    try:
        return SleetOperation(str(value).lower())
    except ValueError as e:
        raise DataIntegrityError(f"Invalid sleet:operation '{value}' in catalog item {item.get('@id')}") from e


def parse_entry(item: Dict[str, Any]) -> CatalogIndexEntry:
    try:
        identity = PackageIdentity(item["nuget:id"], NuGetVersion.parse(item["nuget:version"]))
        commit_time = parse_date(item["commitTimeStamp"])
    except (KeyError, ValueError) as e:
        raise DataIntegrityError(f"Invalid catalog item {item.get('@id')}: {e}") from e
    return CatalogIndexEntry(
        package=identity,
        commit_time=commit_time,
        operation=parse_operation(item),
        details_uri=item["@id"],
    )


class Catalog:
    name = "Catalog"

    def __init__(self, context: SleetContext):
        self.context = context
        self.file_system = context.file_system

    @property
    def index_file(self) -> FeedFile:
        return self.file_system.get(feed_paths.CATALOG_INDEX)

    @property
    def index_uri(self) -> str:
        return self.index_file.entity_uri

    # -- writes --------------------------------------------------------------

    async def apply_operations(self, operations) -> None:
        # Symbols packages are not part of the catalog.
        removes = operations.removes(is_symbols=False)
        adds = operations.adds(is_symbols=False)
        if removes:
            await self.remove_packages(removes)
        if adds:
            await self.add_packages(adds)

    async def add_packages(self, packages: Sequence[PackageInput]) -> None:
        details = []
        for package in packages:
            if package.package_details is None:
                package.package_details = create_package_details(package, self.context)
            details.append(package.package_details)

        await self._write_details(details)
        await self.add_catalog_commits([create_commit(d) for d in details], "nuget:lastCreated")

    async def remove_packages(self, packages: Sequence[PackageInput]) -> None:
        details = [create_delete_details(p.identity, p.remove_reason, self.context) for p in packages]
        await self._write_details(details)
        await self.add_catalog_commits([create_commit(d) for d in details], "nuget:lastDeleted")

    async def _write_details(self, details: List[Dict[str, Any]]) -> None:
        # Each details document has its own path, so they are written in parallel.
        await asyncio.gather(*(self.file_system.get_by_uri(d["@id"]).write_json(d) for d in details))

    async def get_index(self) -> Dict[str, Any]:
        json = await self.index_file.get_json_or_none()
        if json is None:
            json = templates.catalog_index(self.file_system.base_uri, self.context.now, self.context.commit_id)
        return json

    def get_current_page_path(self, index_json: Dict[str, Any]) -> str:
        """The most recent page while it has room, otherwise the next new page."""
        pages = index_json.get("items", [])
        if pages:
            latest = None
            for page in pages:
                if latest is None or parse_date(page["commitTimeStamp"]) >= parse_date(latest["commitTimeStamp"]):
                    latest = page
            if latest.get("count", 0) < self.context.feed_settings.catalog_page_size:
                return self.file_system.get_relative_path(latest["@id"])
        return feed_paths.catalog_page(len(pages))

    async def add_catalog_commits(self, commits: List[Dict[str, Any]], date_property: str) -> None:
        """Append the whole batch to the current page and update the index."""
        if not commits:
            return
        index_json = await self.get_index()
        page_file = self.file_system.get(self.get_current_page_path(index_json))
        page_json = await page_file.get_json_or_none()
        if page_json is None:
            page_json = templates.catalog_page(page_file.entity_uri, self.index_uri, self.context.now, self.context.commit_id)

        items = list(page_json.get("items", [])) + commits
        # Stable sort, commits sharing a timestamp keep the order they were applied in.
        items.sort(key=lambda item: parse_date(item["commitTimeStamp"]))
        stamp = get_date_string(self.context.now)
        page_json["items"] = items
        page_json["count"] = len(items)
        page_json["commitId"] = self.context.commit_id
        page_json["commitTimeStamp"] = stamp
        await page_file.write_json(page_json)

        self.update_page_index(index_json, page_json, date_property)
        await self.index_file.write_json(index_json)

    def update_page_index(self, index_json: Dict[str, Any], page_json: Dict[str, Any], date_property: str) -> None:
        pages = index_json.setdefault("items", [])
        entry = next((p for p in pages if p.get("@id") == page_json["@id"]), None)
        if entry is None:
            entry = {"@id": page_json["@id"], "@type": "CatalogPage"}
            pages.append(entry)

        stamp = get_date_string(self.context.now)
        entry["commitId"] = self.context.commit_id
        entry["commitTimeStamp"] = stamp
        entry["count"] = page_json["count"]

        index_json["commitId"] = self.context.commit_id
        index_json["commitTimeStamp"] = stamp
        index_json["count"] = len(pages)
        index_json[date_property] = stamp
        index_json["nuget:lastEdited"] = stamp

    # -- reads ---------------------------------------------------------------

    async def get_index_entries(self) -> List[CatalogIndexEntry]:
        """
        Every commit, newest first.

        Commits with the same timestamp are ordered by their position in the
        pages, later position first.
        """
        index_json = await self.index_file.get_json_or_none()
        if index_json is None:
            return []

        pages = index_json.get("items", [])
        page_jsons = await asyncio.gather(*(self.file_system.get_by_uri(p["@id"]).get_json() for p in pages))
        entries = [parse_entry(item) for page in page_jsons for item in page.get("items", [])]
        ordered = sorted(enumerate(entries), key=lambda pair: (pair[1].commit_time, pair[0]), reverse=True)
        return [entry for _, entry in ordered]

    async def get_rolled_up_index(self) -> List[CatalogIndexEntry]:
        """Latest commit per identity."""
        seen: Set[PackageIdentity] = set()
        result = []
        for entry in await self.get_index_entries():
            if entry.package not in seen:
                seen.add(entry.package)
                result.append(entry)
        return result

    async def get_existing_packages_index(self) -> List[CatalogIndexEntry]:
        return [e for e in await self.get_rolled_up_index() if e.operation == SleetOperation.ADD]

    async def get_packages(self) -> Set[PackageIdentity]:
        return {e.package for e in await self.get_existing_packages_index()}

    async def get_packages_by_id(self, package_id: str) -> Set[PackageIdentity]:
        return {p for p in await self.get_packages() if p.id.lower() == package_id.lower()}

    async def get_latest_entry(self, identity: PackageIdentity) -> Optional[CatalogIndexEntry]:
        for entry in await self.get_index_entries():
            if entry.package == identity:
                return entry
        return None

    async def exists(self, identity: PackageIdentity) -> bool:
        entry = await self.get_latest_entry(identity)
        return entry is not None and entry.operation == SleetOperation.ADD

    async def get_latest_package_details(self, identity: PackageIdentity) -> Optional[Dict[str, Any]]:
        entry = await self.get_latest_entry(identity)
        if entry is None or entry.operation != SleetOperation.ADD:
            return None
        return await self.file_system.get_by_uri(entry.details_uri).get_json()
