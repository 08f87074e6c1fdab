"""
Flat container: nupkg and nuspec files at predictable lower-cased paths, plus
a version list per id.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Set

from sleet.core.context import SleetContext
from sleet.core.errors import DataIntegrityError
from sleet.data.package_input import PackageInput
from sleet.domain import feed_paths
from sleet.domain.models import FlatContainerIndex
from sleet.domain.versioning import NuGetVersion, PackageIdentity

logger = logging.getLogger(__name__)


class FlatContainer:
    name = "FlatContainer"

    def __init__(self, context: SleetContext):
        self.context = context
        self.file_system = context.file_system

    def get_nupkg_uri(self, identity: PackageIdentity) -> str:
        return self.file_system.get_entity_uri(feed_paths.flat_container_nupkg(identity))

    async def apply_operations(self, operations) -> None:
        for package in operations.removes(is_symbols=False):
            await self.remove_package_files(package.identity)

        await asyncio.gather(*(self.add_package_files(p) for p in operations.adds(is_symbols=False)))

        for package_id in operations.get_touched_ids(is_symbols=False):
            await self.write_index(package_id, operations.updated_index.packages.get_versions(package_id))

    async def add_package_files(self, package: PackageInput) -> None:
        if package.nuspec_bytes is None or package.package_path is None:
            raise DataIntegrityError(f"Missing {package.identity.id}.nuspec in {package}")
        nupkg = self.file_system.get(feed_paths.flat_container_nupkg(package.identity))
        await nupkg.write_file(package.package_path)
        await self.file_system.get(feed_paths.flat_container_nuspec(package.identity)).write_bytes(package.nuspec_bytes)
        package.nupkg_uri = nupkg.entity_uri

    async def remove_package_files(self, identity: PackageIdentity) -> None:
        await self.file_system.get(feed_paths.flat_container_nupkg(identity)).delete()
        await self.file_system.get(feed_paths.flat_container_nuspec(identity)).delete()

    async def write_index(self, package_id: str, versions: List[NuGetVersion]) -> None:
        index_file = self.file_system.get(feed_paths.flat_container_index(package_id))
        if not versions:
            if await index_file.exists():
                await index_file.delete()
            return
        document = FlatContainerIndex(versions=[v.to_normalized_string().lower() for v in sorted(versions)])
        await index_file.write_json(document.model_dump())

    async def add_package(self, package: PackageInput) -> None:
        await self.add_package_files(package)
        versions = set(await self.get_versions(package.identity.id))
        versions.add(package.identity.version)
        await self.write_index(package.identity.id, sorted(versions))

    async def remove_package(self, identity: PackageIdentity) -> None:
        await self.remove_package_files(identity)
        versions = [v for v in await self.get_versions(identity.id) if v != identity.version]
        await self.write_index(identity.id, versions)

    async def get_versions(self, package_id: str) -> List[NuGetVersion]:
        json = await self.file_system.get(feed_paths.flat_container_index(package_id)).get_json_or_none()
        if json is None:
            return []
        return sorted(NuGetVersion.parse(v) for v in FlatContainerIndex.model_validate(json).versions)

    async def get_packages_by_id(self, package_id: str) -> Set[PackageIdentity]:
        return {PackageIdentity(package_id, v) for v in await self.get_versions(package_id)}

    async def read_nupkg(self, identity: PackageIdentity) -> bytes:
        return await self.file_system.get(feed_paths.flat_container_nupkg(identity)).read_bytes()
