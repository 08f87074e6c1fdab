"""
Empty documents written by init and used whenever a feed file is missing.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sleet import __version__
from sleet.domain.json_ld import get_date_string
from sleet.domain.models import AutoCompleteDocument

CATALOG_CONTEXT: Dict[str, Any] = {
    "@vocab": "http://schema.nuget.org/catalog#",
    "nuget": "http://schema.nuget.org/schema#",
    "sleet": "https://github.com/emgarten/sleet/schema#",
    "items": {"@id": "item", "@container": "@set"},
    "parent": {"@type": "@id"},
    "commitTimeStamp": {"@type": "http://www.w3.org/2001/XMLSchema#dateTime"},
    "nuget:lastCreated": {"@type": "http://www.w3.org/2001/XMLSchema#dateTime"},
    "nuget:lastEdited": {"@type": "http://www.w3.org/2001/XMLSchema#dateTime"},
    "nuget:lastDeleted": {"@type": "http://www.w3.org/2001/XMLSchema#dateTime"},
}

PACKAGE_DETAILS_CONTEXT: Dict[str, Any] = {
    "@vocab": "http://schema.nuget.org/schema#",
    "catalog": "http://schema.nuget.org/catalog#",
    "sleet": "https://github.com/emgarten/sleet/schema#",
    "xsd": "http://www.w3.org/2001/XMLSchema#",
    "dependencies": {"@id": "dependency", "@container": "@set"},
    "dependencyGroups": {"@id": "dependencyGroup", "@container": "@set"},
    "packageEntries": {"@id": "packageEntry", "@container": "@set"},
    "tags": {"@id": "tag", "@container": "@set"},
    "created": {"@type": "xsd:dateTime"},
    "lastEdited": {"@type": "xsd:dateTime"},
    "published": {"@type": "xsd:dateTime"},
}

REGISTRATION_CONTEXT: Dict[str, Any] = {
    "@vocab": "http://schema.nuget.org/schema#",
    "catalog": "http://schema.nuget.org/catalog#",
    "sleet": "https://github.com/emgarten/sleet/schema#",
    "xsd": "http://www.w3.org/2001/XMLSchema#",
    "items": {"@id": "catalog:item", "@container": "@set"},
    "commitTimeStamp": {"@id": "catalog:commitTimeStamp", "@type": "xsd:dateTime"},
    "commitId": {"@id": "catalog:commitId"},
    "count": {"@id": "catalog:count"},
    "parent": {"@id": "catalog:parent", "@type": "@id"},
    "tags": {"@id": "tag", "@container": "@set"},
    "packageTargetFrameworks": {"@id": "packageTargetFramework", "@container": "@set"},
    "dependencyGroups": {"@id": "dependencyGroup", "@container": "@set"},
    "dependencies": {"@id": "dependency", "@container": "@set"},
    "packageContent": {"@type": "@id"},
    "published": {"@type": "xsd:dateTime"},
    "registration": {"@type": "@id"},
}

SERVICE_INDEX_CONTEXT: Dict[str, Any] = {
    "@vocab": "http://schema.nuget.org/services#",
    "comment": "http://www.w3.org/2000/01/rdf-schema#comment",
}

# (relative path, resource types, comment)
_SERVICE_RESOURCES = (
    ("search/query", ("SearchQueryService", "SearchQueryService/3.0.0-beta", "SearchQueryService/3.0.0-rc"),
     "Query endpoint of the static search document."),
    ("autocomplete/query", ("SearchAutocompleteService", "SearchAutocompleteService/3.0.0-beta", "SearchAutocompleteService/3.0.0-rc"),
     "Autocomplete endpoint listing all package ids."),
    ("registration/", ("RegistrationsBaseUrl", "RegistrationsBaseUrl/3.0.0-beta", "RegistrationsBaseUrl/3.0.0-rc", "RegistrationsBaseUrl/3.6.0"),
     "Base URL of the package registrations."),
    ("flatcontainer/", ("PackageBaseAddress/3.0.0",),
     "Base URL of where nupkgs are stored, in the format https://<host>/flatcontainer/{id-lower}/{version-lower}/{id-lower}.{version-lower}.nupkg"),
    ("catalog/index.json", ("Catalog/3.0.0",),
     "Index of the append-only catalog."),
    ("symbolspackages/", ("SymbolsPackageBaseAddress/1.0.0",),
     "Base URL of the symbols packages."),
)


def service_index(base_uri: str, now: datetime) -> Dict[str, Any]:
    resources = []
    for path, types, comment in _SERVICE_RESOURCES:
        for resource_type in types:
            resources.append({"@id": base_uri + path, "@type": resource_type, "comment": comment})
    return {
        "version": "3.0.0",
        "resources": resources,
        "sleet:created": get_date_string(now),
        "sleet:toolVersion": __version__,
        "@context": dict(SERVICE_INDEX_CONTEXT, sleet="https://github.com/emgarten/sleet/schema#"),
    }


def catalog_index(base_uri: str, now: datetime, commit_id: str) -> Dict[str, Any]:
    stamp = get_date_string(now)
    return {
        "@id": base_uri + "catalog/index.json",
        "@type": ["CatalogRoot", "AppendOnlyCatalog", "Permalink"],
        "commitId": commit_id,
        "commitTimeStamp": stamp,
        "count": 0,
        "nuget:lastCreated": stamp,
        "nuget:lastDeleted": stamp,
        "nuget:lastEdited": stamp,
        "items": [],
        "@context": CATALOG_CONTEXT,
    }


def catalog_page(page_uri: str, index_uri: str, now: datetime, commit_id: str) -> Dict[str, Any]:
    return {
        "@id": page_uri,
        "@type": "CatalogPage",
        "commitId": commit_id,
        "commitTimeStamp": get_date_string(now),
        "count": 0,
        "parent": index_uri,
        "items": [],
        "@context": CATALOG_CONTEXT,
    }


def search_query(base_uri: str, now: datetime) -> Dict[str, Any]:
    return {
        "totalHits": 0,
        "lastReopen": get_date_string(now),
        "index": "sleet",
        "data": [],
        "@context": {"@vocab": "http://schema.nuget.org/schema#", "@base": base_uri + "registration/"},
    }


def autocomplete_query() -> Dict[str, Any]:
    return AutoCompleteDocument().model_dump(by_alias=True)


def feed_settings_file(settings_uri: str, now: datetime) -> Dict[str, Any]:
    stamp = get_date_string(now)
    return {
        "@id": settings_uri,
        "@type": "Settings",
        "created": stamp,
        "lastEdited": stamp,
        "feedSettings": [],
    }

