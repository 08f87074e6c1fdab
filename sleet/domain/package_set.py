"""
In-memory package sets backing `sleet.packageindex.json`.

A PackageSet groups identities by lower-cased id so lookups by id stay cheap
on large feeds. PackageSets pairs the normal and symbols sets.
"""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Set

from sleet.domain.versioning import NuGetVersion, PackageIdentity


class PackageSet:
    """A sorted set of package identities without duplicate (id, version) pairs."""

    def __init__(self, packages: Optional[Iterable[PackageIdentity]] = None):
        self._by_id: Dict[str, Set[PackageIdentity]] = {}
        for package in packages or []:
            self.add(package)

    def add(self, identity: PackageIdentity) -> bool:
        """Add an identity, returns False if it was already present."""
        versions = self._by_id.setdefault(identity.id.lower(), set())
        if identity in versions:
            return False
        versions.add(identity)
        return True

    def remove(self, identity: PackageIdentity) -> bool:
        """Remove an identity, returns False if it was not present."""
        key = identity.id.lower()
        versions = self._by_id.get(key)
        if not versions or identity not in versions:
            return False
        versions.discard(identity)
        if not versions:
            del self._by_id[key]
        return True

    def exists(self, identity: PackageIdentity) -> bool:
        return identity in self._by_id.get(identity.id.lower(), ())

    def exists_id(self, package_id: str) -> bool:
        return package_id.lower() in self._by_id

    def get_packages(self) -> Set[PackageIdentity]:
        return {p for versions in self._by_id.values() for p in versions}

    def get_packages_by_id(self, package_id: str) -> Set[PackageIdentity]:
        return set(self._by_id.get(package_id.lower(), ()))

    def get_versions(self, package_id: str) -> List[NuGetVersion]:
        """Versions for an id, ascending."""
        return sorted(p.version for p in self._by_id.get(package_id.lower(), ()))

    def get_package_ids(self) -> List[str]:
        """Unique ids sorted case-insensitively, using the casing of the lowest version."""
        return [min(self._by_id[key]).id for key in sorted(self._by_id)]

    def clone(self) -> "PackageSet":
        copy = PackageSet()
        copy._by_id = {key: set(versions) for key, versions in self._by_id.items()}
        return copy

    def to_json(self) -> Dict[str, List[str]]:
        """id -> versions (full strings, descending), ids ordered case-insensitively."""
        result: Dict[str, List[str]] = {}
        for key in sorted(self._by_id):
            versions = sorted(self._by_id[key], reverse=True)
            result[versions[-1].id] = [p.version.to_full_string() for p in versions]
        return result

    @classmethod
    def from_json(cls, node: Dict[str, List[str]]) -> "PackageSet":
        result = cls()
        for package_id, versions in (node or {}).items():
            for version in versions or []:
                result.add(PackageIdentity(package_id, NuGetVersion.parse(version)))
        return result

    def __len__(self) -> int:
        return sum(len(versions) for versions in self._by_id.values())

    def __iter__(self) -> Iterator[PackageIdentity]:
        return iter(sorted(self.get_packages()))

    def __contains__(self, identity: object) -> bool:
        return isinstance(identity, PackageIdentity) and self.exists(identity)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageSet):
            return NotImplemented
        return self.get_packages() == other.get_packages()

    def __repr__(self) -> str:
        return f"PackageSet({len(self)} packages)"


class PackageSets:
    """The full authoritative snapshot: normal packages and symbols packages."""

    def __init__(self, packages: Optional[PackageSet] = None, symbols: Optional[PackageSet] = None):
        self.packages = packages if packages is not None else PackageSet()
        self.symbols = symbols if symbols is not None else PackageSet()

    def get(self, is_symbols: bool) -> PackageSet:
        return self.symbols if is_symbols else self.packages

    def clone(self) -> "PackageSets":
        return PackageSets(self.packages.clone(), self.symbols.clone())

    def all_packages(self) -> Set[PackageIdentity]:
        return self.packages.get_packages() | self.symbols.get_packages()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageSets):
            return NotImplemented
        return self.packages == other.packages and self.symbols == other.symbols
