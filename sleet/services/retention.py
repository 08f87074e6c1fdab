"""
Retention: pick the versions that fall outside the configured limits.
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional, Set

from sleet.domain.package_set import PackageSets
from sleet.domain.versioning import NuGetVersion, PackageIdentity


def resolve_package_sets(package_sets: PackageSets) -> Set[PackageIdentity]:
    return package_sets.all_packages()


def get_release_label_key(version: NuGetVersion, count: Optional[int]) -> str:
    if not count or count < 1:
        return ""
    return ".".join(version.release_labels[:count]).lower()


def get_packages_to_prune(
    feed_packages: Iterable[PackageIdentity],
    pinned_packages: Iterable[PackageIdentity],
    stable_version_max: int,
    prerelease_version_max: int,
    group_by_release_label_count: Optional[int] = None,
) -> Set[PackageIdentity]:
    """
    Walk each id from the highest version down and prune past the limits.

    Pinned packages count towards the limits but are never pruned.
    Prereleases are counted per release-label group when
    group_by_release_label_count is set.
    """
    pinned = set(pinned_packages)
    to_prune: Set[PackageIdentity] = set()

    last_id = None
    stable = 0
    prerelease: Dict[str, int] = {}

    for package in sorted(set(feed_packages), reverse=True):
        if package.id.lower() != last_id:
            last_id = package.id.lower()
            stable = 0
            prerelease = {}

        if package.version.is_prerelease:
            key = get_release_label_key(package.version, group_by_release_label_count)
            prerelease[key] = prerelease.get(key, 0) + 1
            prune = prerelease[key] > prerelease_version_max
        else:
            stable += 1
            prune = stable > stable_version_max

        if prune and package not in pinned:
            to_prune.add(package)
    return to_prune
