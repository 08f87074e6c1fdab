"""
Symbols packages (`*.symbols.nupkg`), stored under `symbolspackages/` when the
feed has symbols enabled.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Set

from sleet.core.context import SleetContext
from sleet.data.package_input import PackageInput
from sleet.domain import feed_paths
from sleet.domain.versioning import PackageIdentity
from sleet.services.catalog_details import create_package_details
from sleet.services.package_index import PackageIndexFile

logger = logging.getLogger(__name__)


class Symbols:
    name = "Symbols"

    def __init__(self, context: SleetContext):
        self.context = context
        self.file_system = context.file_system
        self.package_index = PackageIndexFile(context, feed_paths.SYMBOLS_PACKAGE_INDEX, persist_when_empty=False)

    def get_nupkg_uri(self, identity: PackageIdentity) -> str:
        return self.file_system.get_entity_uri(feed_paths.symbols_nupkg(identity))

    async def apply_operations(self, operations) -> None:
        removes = operations.removes(is_symbols=True)
        adds = operations.adds(is_symbols=True)
        if not removes and not adds:
            return

        for package in removes:
            logger.debug(f"Removing symbols package {package.identity}")
            await self.file_system.get(feed_paths.symbols_nupkg(package.identity)).delete()
            await self.file_system.get(feed_paths.symbols_details(package.identity)).delete()

        await asyncio.gather(*(self.add_package_files(p) for p in adds))

        sets = await self.package_index.get_package_sets()
        for package in removes:
            sets.symbols.remove(package.identity)
        for package in adds:
            sets.symbols.add(package.identity)
        await self.package_index.save_package_sets(sets)

    async def add_package_files(self, package: PackageInput) -> None:
        nupkg = self.file_system.get(feed_paths.symbols_nupkg(package.identity))
        await nupkg.write_file(package.package_path)
        package.nupkg_uri = nupkg.entity_uri
        if package.package_details is None:
            package.package_details = create_package_details(package, self.context, nupkg.entity_uri)
        await self.file_system.get(feed_paths.symbols_details(package.identity)).write_json(package.package_details)

    async def get_packages(self) -> Set[PackageIdentity]:
        return await self.package_index.get_symbols_packages()

    async def read_nupkg(self, identity: PackageIdentity) -> bytes:
        return await self.file_system.get(feed_paths.symbols_nupkg(identity)).read_bytes()
