"""
Static search document (`search/query`).

One entry per package id, built from the latest version's catalog entry
with a `versions` list of every current version. Ids whose versions changed
and ids with an add in the batch (force pushes included) are rebuilt.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set

from sleet.core.context import SleetContext
from sleet.core.errors import DataIntegrityError
from sleet.data import templates
from sleet.data.package_input import PackageInput
from sleet.domain import feed_paths
from sleet.domain.versioning import NuGetVersion, PackageIdentity
from sleet.services.registrations import Registrations
from sleet.storage.file_system import FeedFile

logger = logging.getLogger(__name__)

SEARCH_STRING_PROPERTIES = ("description", "iconUrl", "licenseUrl", "projectUrl", "summary", "title")


def _split_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    return [part.strip() for part in str(value or "").split(",")]


class Search:
    name = "Search"

    def __init__(self, context: SleetContext):
        self.context = context
        self.file_system = context.file_system
        self.registrations = Registrations(context)

    @property
    def index_file(self) -> FeedFile:
        return self.file_system.get(feed_paths.SEARCH_QUERY)

    async def get_index(self) -> Dict[str, Any]:
        json = await self.index_file.get_json_or_none()
        if json is None:
            json = templates.search_query(self.file_system.base_uri, self.context.now)
        return json

    async def apply_operations(self, operations) -> None:
        rebuild = {i.lower(): i for i in operations.get_added_ids(is_symbols=False)}
        for package_id in operations.get_changed_ids():
            rebuild.setdefault(package_id.lower(), package_id)
        if not rebuild:
            return
        changed = [rebuild[key] for key in sorted(rebuild)]

        added = {p.identity: p for p in operations.adds(is_symbols=False)}
        json = await self.get_index()
        entries = {e["id"].lower(): e for e in json.get("data", [])}

        for package_id in changed:
            entries.pop(package_id.lower(), None)
            versions = operations.updated_index.packages.get_packages_by_id(package_id)
            if versions:
                logger.debug(f"Updating search entry for {package_id}")
                entries[package_id.lower()] = await self.create_entry(sorted(versions), added)
            else:
                logger.debug(f"Removing search entry for {package_id}")

        data = [entries[key] for key in sorted(entries)]
        json["data"] = data
        json["totalHits"] = len(data)
        await self.index_file.write_json(json)

    async def _get_details(self, identity: PackageIdentity, added: Dict[PackageIdentity, PackageInput]) -> Dict[str, Any]:
        package = added.get(identity)
        if package is not None and package.package_details is not None:
            return package.package_details
        details = await self.registrations.get_catalog_entry(identity)
        if details is None:
            raise DataIntegrityError(f"Unable to find registration details for {identity}")
        return details

    async def create_entry(self, versions: List[PackageIdentity], added: Dict[PackageIdentity, PackageInput]) -> Dict[str, Any]:
        """Entry for one id, `versions` ascending and metadata from the highest."""
        latest = versions[-1]
        details = await self._get_details(latest, added)

        entry: Dict[str, Any] = {
            "@id": self.registrations.package_file(latest).entity_uri,
            "@type": "Package",
            "registration": self.registrations.index_file(latest.id).entity_uri,
            "id": details.get("id", latest.id),
            "version": details.get("version", latest.version.to_full_string()),
            "authors": _split_list(details.get("authors")),
            "owners": _split_list(details.get("owners")),
            "tags": details.get("tags", []),
            "totalDownloads": 0,
        }
        for name in SEARCH_STRING_PROPERTIES:
            entry[name] = details.get(name) or ""

        entry["versions"] = [
            {
                "@id": self.registrations.package_file(identity).entity_uri,
                "@type": "Package",
                "downloads": 0,
                "version": identity.version.to_full_string(),
            }
            for identity in versions
        ]
        return entry

    async def get_packages(self) -> Set[PackageIdentity]:
        json = await self.index_file.get_json_or_none()
        if json is None:
            return set()
        return {
            PackageIdentity(entry["id"], NuGetVersion.parse(v["version"]))
            for entry in json.get("data", [])
            for v in entry.get("versions", [])
        }

    async def get_entry(self, package_id: str) -> Optional[Dict[str, Any]]:
        json = await self.index_file.get_json_or_none()
        for entry in (json or {}).get("data", []):
            if entry["id"].lower() == package_id.lower():
                return entry
        return None
