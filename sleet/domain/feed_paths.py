"""
Relative paths of every document in a feed. All paths are lower-cased.
"""
from __future__ import annotations

from sleet.domain.versioning import PackageIdentity

CATALOG_INDEX = "catalog/index.json"
SEARCH_QUERY = "search/query"
AUTOCOMPLETE_QUERY = "autocomplete/query"
SERVICE_INDEX = "index.json"
FEED_SETTINGS = "sleet.settings.json"
SYMBOLS_PACKAGE_INDEX = "symbolspackages/packageindex.json"


def _parts(identity: PackageIdentity) -> tuple:
    return identity.id.lower(), identity.version.to_normalized_string().lower()


def catalog_page(index: int) -> str:
    return f"catalog/page.{index}.json"


def catalog_details(name: str) -> str:
    return f"catalog/data/{name}.json"


def registration_index(package_id: str) -> str:
    return f"registration/{package_id.lower()}/index.json"


def registration_package(identity: PackageIdentity) -> str:
    package_id, version = _parts(identity)
    return f"registration/{package_id}/{version}.json"


def flat_container_index(package_id: str) -> str:
    return f"flatcontainer/{package_id.lower()}/index.json"


def flat_container_nupkg(identity: PackageIdentity) -> str:
    package_id, version = _parts(identity)
    return f"flatcontainer/{package_id}/{version}/{package_id}.{version}.nupkg"


def flat_container_nuspec(identity: PackageIdentity) -> str:
    package_id, version = _parts(identity)
    return f"flatcontainer/{package_id}/{version}/{package_id}.nuspec"


def symbols_nupkg(identity: PackageIdentity) -> str:
    package_id, version = _parts(identity)
    return f"symbolspackages/{package_id}/{version}/{package_id}.{version}.symbols.nupkg"


def symbols_details(identity: PackageIdentity) -> str:
    package_id, version = _parts(identity)
    return f"symbolspackages/{package_id}/{version}/package.json"


def badge_svg(package_id: str, prerelease: bool) -> str:
    return f"badges/{'vpre' if prerelease else 'v'}/{package_id.lower()}.svg"


def badge_json(package_id: str, prerelease: bool) -> str:
    return f"badges/{'vpre' if prerelease else 'v'}/{package_id.lower()}.json"
