"""
The authoritative package index (`sleet.packageindex.json`).

Every derived service must agree with this document. It maps id -> versions
for normal packages (`packages`) and symbols packages (`symbols`).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Set

from pydantic import ValidationError

from sleet.core.context import SleetContext
from sleet.core.errors import DataIntegrityError
from sleet.domain.json_ld import get_date_string
from sleet.domain.models import PackageIndexDocument
from sleet.domain.package_set import PackageSet, PackageSets
from sleet.domain.versioning import PackageIdentity
from sleet.storage.file_system import FeedFile

logger = logging.getLogger(__name__)

PACKAGE_INDEX_PATH = "sleet.packageindex.json"


class IndexFileBase:
    """
    A JSON index document that may be removed once it becomes empty.

    Files with persist_when_empty keep an empty document instead.
    """

    def __init__(self, context: SleetContext, path: str, persist_when_empty: bool = False):
        self.context = context
        self.path = path
        self.persist_when_empty = persist_when_empty

    @property
    def file(self) -> FeedFile:
        return self.context.file_system.get(self.path)

    def template(self) -> Dict[str, Any]:
        stamp = get_date_string(self.context.now)
        return {"created": stamp, "lastEdited": stamp}

    async def get_json_or_template(self) -> Dict[str, Any]:
        json = await self.file.get_json_or_none()
        return json if json is not None else self.template()

    async def init(self) -> bool:
        """Write the template if the file does not exist, returns True if written."""
        if await self.file.exists():
            return False
        await self.file.write_json(self.template())
        return True

    async def save(self, json: Dict[str, Any], is_empty: bool) -> None:
        if is_empty and not self.persist_when_empty:
            if await self.file.exists():
                logger.debug(f"Removing empty index {self.path}")
                await self.file.delete()
            return
        json["lastEdited"] = get_date_string(self.context.now)
        await self.file.write_json(json)


class PackageIndexFile(IndexFileBase):
    """An index document holding a PackageSets snapshot."""

    def template(self) -> Dict[str, Any]:
        json = super().template()
        json["packages"] = {}
        json["symbols"] = {}
        return json

    @staticmethod
    def parse(json: Dict[str, Any]) -> PackageSets:
        for node in ("packages", "symbols"):
            if not isinstance(json.get(node), dict):
                raise DataIntegrityError(f"Invalid package index, missing '{node}' node")
        try:
            document = PackageIndexDocument.model_validate(json)
            return PackageSets(PackageSet.from_json(document.packages), PackageSet.from_json(document.symbols))
        except (ValidationError, ValueError) as e:
            raise DataIntegrityError(f"Invalid package index: {e}") from e

    async def get_package_sets(self) -> PackageSets:
        json = await self.file.get_json_or_none()
        if json is None:
            return PackageSets()
        return self.parse(json)

    async def get_packages(self) -> Set[PackageIdentity]:
        return (await self.get_package_sets()).packages.get_packages()

    async def get_symbols_packages(self) -> Set[PackageIdentity]:
        return (await self.get_package_sets()).symbols.get_packages()

    async def get_packages_by_id(self, package_id: str) -> Set[PackageIdentity]:
        return (await self.get_package_sets()).packages.get_packages_by_id(package_id)

    async def get_symbols_packages_by_id(self, package_id: str) -> Set[PackageIdentity]:
        return (await self.get_package_sets()).symbols.get_packages_by_id(package_id)

    async def exists(self, identity: PackageIdentity) -> bool:
        return (await self.get_package_sets()).packages.exists(identity)

    async def symbols_exists(self, identity: PackageIdentity) -> bool:
        return (await self.get_package_sets()).symbols.exists(identity)

    async def is_empty(self) -> bool:
        sets = await self.get_package_sets()
        return len(sets.packages) == 0 and len(sets.symbols) == 0

    async def save_package_sets(self, sets: PackageSets) -> None:
        json = await self.get_json_or_template()
        document = PackageIndexDocument(
            created=json.get("created") or get_date_string(self.context.now),
            last_edited=get_date_string(self.context.now),
            packages=sets.packages.to_json(),
            symbols=sets.symbols.to_json(),
        )
        is_empty = len(sets.packages) == 0 and len(sets.symbols) == 0
        await self.save(document.model_dump(by_alias=True, exclude_none=True), is_empty)

    async def _modify(self, identities: Iterable[PackageIdentity], is_symbols: bool, add: bool) -> bool:
        sets = await self.get_package_sets()
        target = sets.get(is_symbols)
        changed = False
        for identity in identities:
            changed |= target.add(identity) if add else target.remove(identity)
        if changed:
            await self.save_package_sets(sets)
        return changed

    async def add_packages(self, identities: Iterable[PackageIdentity]) -> bool:
        return await self._modify(identities, is_symbols=False, add=True)

    async def add_symbols_packages(self, identities: Iterable[PackageIdentity]) -> bool:
        return await self._modify(identities, is_symbols=True, add=True)

    async def remove_packages(self, identities: Iterable[PackageIdentity]) -> bool:
        """Only saves when something was actually removed."""
        return await self._modify(identities, is_symbols=False, add=False)

    async def remove_symbols_packages(self, identities: Iterable[PackageIdentity]) -> bool:
        return await self._modify(identities, is_symbols=True, add=False)

    async def add_package(self, identity: PackageIdentity) -> bool:
        return await self.add_packages([identity])

    async def remove_package(self, identity: PackageIdentity) -> bool:
        return await self.remove_packages([identity])


class PackageIndex(PackageIndexFile):
    """The feed root index. It persists even when empty so existence checks stay cheap."""

    name = "PackageIndex"

    def __init__(self, context: SleetContext, path: Optional[str] = None):
        super().__init__(context, path or PACKAGE_INDEX_PATH, persist_when_empty=True)

    async def apply_operations(self, operations) -> None:
        await self.save_package_sets(operations.updated_index)
