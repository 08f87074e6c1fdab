"""
One batch of package changes.

SleetOperations is computed once per command from the current index and the
inputs to add and remove, then handed read-only to every service.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from sleet.data.package_input import PackageInput
from sleet.domain.package_set import PackageSets
from sleet.domain.versioning import PackageIdentity


class SleetOperations:
    def __init__(
        self,
        original_index: PackageSets,
        updated_index: PackageSets,
        to_add: Sequence[PackageInput],
        to_remove: Sequence[PackageInput],
    ):
        self.original_index = original_index
        self.updated_index = updated_index
        self.to_add = tuple(sorted(to_add))
        self.to_remove = tuple(sorted(to_remove))

    @classmethod
    def create(
        cls,
        original_index: PackageSets,
        to_add: Iterable[PackageInput],
        to_remove: Iterable[PackageInput],
    ) -> "SleetOperations":
        """
        Apply every remove, then every add, to a copy of original_index.

        Remove-then-add keeps a replaced (force pushed) package present.
        """
        to_add = list(to_add)
        to_remove = list(to_remove)
        updated = original_index.clone()
        for package in to_remove:
            updated.get(package.is_symbols_package).remove(package.identity)
        for package in to_add:
            updated.get(package.is_symbols_package).add(package.identity)
        return cls(original_index.clone(), updated, to_add, to_remove)

    @classmethod
    def create_delete(
        cls,
        original_index: PackageSets,
        packages: Iterable[PackageIdentity],
        symbols_packages: Iterable[PackageIdentity] = (),
        reason: Optional[str] = None,
    ) -> "SleetOperations":
        to_remove = [PackageInput.create_for_delete(p, reason=reason) for p in packages]
        to_remove += [PackageInput.create_for_delete(p, is_symbols_package=True, reason=reason) for p in symbols_packages]
        return cls.create(original_index, [], to_remove)

    def get_changed_ids(self) -> List[str]:
        """
        Ids whose normal package versions differ between the two indexes.

        Sorted case-insensitively, one entry per id. The casing comes from
        the first input in the batch with that id (adds before removes),
        falling back to the index.
        """
        original = self.original_index.packages.get_packages()
        updated = self.updated_index.packages.get_packages()
        changed_keys = {identity.id.lower() for identity in original ^ updated}

        casing = {}
        for package in (*self.to_add, *self.to_remove):
            casing.setdefault(package.identity.id.lower(), package.identity.id)
        for identity in sorted(original ^ updated):
            casing.setdefault(identity.id.lower(), identity.id)
        return [casing[key] for key in sorted(changed_keys)]

    def get_added_ids(self, is_symbols: bool = False) -> List[str]:
        """Ids with at least one add in the batch, including force pushes."""
        ids = {}
        for package in self.adds(is_symbols):
            ids.setdefault(package.identity.id.lower(), package.identity.id)
        return [ids[key] for key in sorted(ids)]

    def get_touched_ids(self, is_symbols: bool = False) -> List[str]:
        """Ids of every input in the batch, changed or not."""
        ids = {}
        for package in (*self.to_remove, *self.to_add):
            if package.is_symbols_package == is_symbols:
                ids.setdefault(package.identity.id.lower(), package.identity.id)
        return [ids[key] for key in sorted(ids)]

    def adds(self, is_symbols: bool = False) -> List[PackageInput]:
        return [p for p in self.to_add if p.is_symbols_package == is_symbols]

    def removes(self, is_symbols: bool = False) -> List[PackageInput]:
        return [p for p in self.to_remove if p.is_symbols_package == is_symbols]

    @property
    def has_changes(self) -> bool:
        return bool(self.to_add or self.to_remove)

    def __repr__(self) -> str:
        return f"SleetOperations(add={len(self.to_add)}, remove={len(self.to_remove)})"
