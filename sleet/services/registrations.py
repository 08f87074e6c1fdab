"""
Registrations: one index per package id listing every current version.

All versions of an id live in a single inline page. Each version also gets
a standalone package blob that embeds the full catalog entry, so clients
work even when the catalog is disabled.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Set

from sleet.core.context import SleetContext
from sleet.data import templates
from sleet.data.package_input import PackageInput
from sleet.domain import feed_paths
from sleet.domain.json_ld import copy_properties, create, get_date_string
from sleet.domain.versioning import NuGetVersion, PackageIdentity
from sleet.services.catalog_details import create_package_details
from sleet.storage.file_system import FeedFile

logger = logging.getLogger(__name__)

CATALOG_ENTRY_PROPERTIES = (
    "authors",
    "dependencyGroups",
    "description",
    "iconUrl",
    "id",
    "language",
    "licenseUrl",
    "listed",
    "minClientVersion",
    "packageContent",
    "projectUrl",
    "published",
    "requireLicenseAcceptance",
    "summary",
    "tags",
    "title",
    "version",
)


def _item_version(item: Dict[str, Any]) -> NuGetVersion:
    return NuGetVersion.parse(item["catalogEntry"]["version"])


class Registrations:
    name = "Registrations"

    def __init__(self, context: SleetContext):
        self.context = context
        self.file_system = context.file_system

    def index_file(self, package_id: str) -> FeedFile:
        return self.file_system.get(feed_paths.registration_index(package_id))

    def package_file(self, identity: PackageIdentity) -> FeedFile:
        return self.file_system.get(feed_paths.registration_package(identity))

    # -- writes --------------------------------------------------------------

    async def apply_operations(self, operations) -> None:
        await self._update(operations.adds(is_symbols=False), operations.removes(is_symbols=False))

    async def add_packages(self, packages: Sequence[PackageInput]) -> None:
        await self._update(packages, [])

    async def remove_packages(self, packages: Sequence[PackageInput]) -> None:
        await self._update([], packages)

    async def _update(self, adds: Sequence[PackageInput], removes: Sequence[PackageInput]) -> None:
        by_id: Dict[str, Dict[str, List[PackageInput]]] = {}
        for package in removes:
            by_id.setdefault(package.identity.id.lower(), {"add": [], "remove": []})["remove"].append(package)
        for package in adds:
            by_id.setdefault(package.identity.id.lower(), {"add": [], "remove": []})["add"].append(package)

        # Ids touch disjoint documents.
        await asyncio.gather(*(self._update_id(group["add"], group["remove"]) for group in by_id.values()))

    async def _update_id(self, adds: List[PackageInput], removes: List[PackageInput]) -> None:
        package_id = (adds or removes)[0].identity.id
        index_file = self.index_file(package_id)
        items = {_item_version(i): i for i in await self.get_page_items(package_id)}

        for package in removes:
            if items.pop(package.identity.version, None) is not None:
                logger.debug(f"Removing registration for {package.identity}")
            await self.package_file(package.identity).delete()

        for package in adds:
            version = package.identity.version
            if version in items:
                logger.warning(f"Removing duplicate registration entry for {package.identity}")
            if package.package_details is None:
                package.package_details = create_package_details(package, self.context)
            package.registration_uri = index_file.entity_uri
            items[version] = self.create_item(package)
            await self.package_file(package.identity).write_json(self.create_package_blob(package))

        if not items:
            if await index_file.exists():
                logger.debug(f"Removing registration index for {package_id}")
                await index_file.delete()
            return

        await index_file.write_json(self.create_index(package_id, [items[v] for v in sorted(items)]))

    def create_index(self, package_id: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        index_uri = self.index_file(package_id).entity_uri
        stamp = get_date_string(self.context.now)
        lower = items[0]["catalogEntry"]["version"]
        upper = items[-1]["catalogEntry"]["version"]

        page = create(f"{index_uri}#page/{lower}/{upper}", "catalog:CatalogPage")
        page["commitId"] = self.context.commit_id
        page["commitTimeStamp"] = stamp
        page["count"] = len(items)
        page["items"] = items
        page["parent"] = index_uri
        page["lower"] = lower
        page["upper"] = upper

        index = create(index_uri, ["catalog:CatalogRoot", "PackageRegistration", "catalog:Permalink"])
        index["commitId"] = self.context.commit_id
        index["commitTimeStamp"] = stamp
        index["count"] = 1
        index["items"] = [page]
        index["@context"] = templates.REGISTRATION_CONTEXT
        return index

    def create_item(self, package: PackageInput) -> Dict[str, Any]:
        details = package.package_details
        blob_uri = self.package_file(package.identity).entity_uri

        item = create(blob_uri, "Package")
        item["commitId"] = self.context.commit_id
        item["commitTimeStamp"] = get_date_string(self.context.now)
        item["packageContent"] = details.get("packageContent", "")
        item["registration"] = package.registration_uri or self.index_file(package.identity.id).entity_uri

        entry = create(details["@id"], "PackageDetails")
        copy_properties(details, entry, CATALOG_ENTRY_PROPERTIES)
        item["catalogEntry"] = entry
        return item

    def create_package_blob(self, package: PackageInput) -> Dict[str, Any]:
        details = package.package_details
        blob = create(self.package_file(package.identity).entity_uri, ["Package", "http://schema.nuget.org/catalog#Permalink"])
        blob["catalogEntry"] = details["@id"]
        blob["listed"] = True
        blob["packageContent"] = details.get("packageContent", "")
        blob["published"] = details.get("published", get_date_string(self.context.now))
        blob["registration"] = self.index_file(package.identity.id).entity_uri
        blob["sleet:catalogEntry"] = {k: v for k, v in details.items() if k not in ("packageEntries", "@context")}
        blob["@context"] = {
            "@vocab": "http://schema.nuget.org/schema#",
            "xsd": "http://www.w3.org/2001/XMLSchema#",
            "sleet": "https://github.com/emgarten/sleet/schema#",
            "catalogEntry": {"@type": "@id"},
            "registration": {"@type": "@id"},
            "packageContent": {"@type": "@id"},
            "published": {"@type": "xsd:dateTime"},
        }
        return blob

    # -- reads ---------------------------------------------------------------

    async def get_page_items(self, package_id: str) -> List[Dict[str, Any]]:
        json = await self.index_file(package_id).get_json_or_none()
        if json is None:
            return []
        return [item for page in json.get("items", []) for item in page.get("items", [])]

    async def get_packages_by_id(self, package_id: str) -> Set[PackageIdentity]:
        return {
            PackageIdentity(item["catalogEntry"]["id"], _item_version(item))
            for item in await self.get_page_items(package_id)
        }

    async def get_catalog_entry(self, identity: PackageIdentity) -> Optional[Dict[str, Any]]:
        """Full catalog entry embedded in the package blob."""
        json = await self.package_file(identity).get_json_or_none()
        if json is None:
            return None
        return json.get("sleet:catalogEntry")
