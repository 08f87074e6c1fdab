"""
Package details documents.

A details document is the permanent record behind a catalog commit. Add
details carry the full nuspec metadata and file list, delete details are a
small tombstone.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sleet import __version__
from sleet.core.context import SleetContext
from sleet.data.package_input import PackageInput
from sleet.data.templates import PACKAGE_DETAILS_CONTEXT
from sleet.domain import feed_paths
from sleet.domain.json_ld import create, get_date_string
from sleet.domain.models import SleetOperation
from sleet.domain.versioning import PackageIdentity

NUSPEC_STRING_PROPERTIES = (
    "authors",
    "copyright",
    "description",
    "iconUrl",
    "projectUrl",
    "licenseUrl",
    "language",
    "summary",
    "owners",
    "releaseNotes",
    "minClientVersion",
)


def new_details_uri(context: SleetContext) -> str:
    return context.file_system.get_entity_uri(feed_paths.catalog_details(str(uuid.uuid4())))


def _dependency_groups(details_uri: str, package: PackageInput, context: SleetContext) -> List[Dict[str, Any]]:
    groups = []
    for group in package.nuspec.dependency_groups:
        framework = group.target_framework or ""
        group_uri = f"{details_uri}#dependencygroup"
        if framework:
            group_uri += f"/{framework.lower()}"
        json = create(group_uri, "PackageDependencyGroup")
        if framework:
            json["targetFramework"] = framework
        json["dependencies"] = [
            {
                "@id": f"{group_uri}/{dependency.id.lower()}",
                "@type": "PackageDependency",
                "id": dependency.id,
                "range": dependency.range or "",
                "registration": context.file_system.get_entity_uri(feed_paths.registration_index(dependency.id)),
            }
            for dependency in group.dependencies
        ]
        groups.append(json)
    return groups


def _framework_assembly_groups(details_uri: str, package: PackageInput) -> List[Dict[str, Any]]:
    by_framework: Dict[str, List[str]] = {}
    for assembly in package.nuspec.framework_assemblies:
        by_framework.setdefault(assembly.target_framework or "", []).append(assembly.assembly_name)

    groups = []
    for framework in sorted(by_framework):
        group_uri = f"{details_uri}#frameworkassemblygroup"
        if framework:
            group_uri += f"/{framework.lower()}"
        json = create(group_uri, "FrameworkAssemblyGroup")
        if framework:
            json["targetFramework"] = framework
        json["assembly"] = sorted(by_framework[framework])
        groups.append(json)
    return groups


def create_package_details(package: PackageInput, context: SleetContext, nupkg_uri: Optional[str] = None) -> Dict[str, Any]:
    """Build the add details for a package read from disk."""
    nuspec = package.nuspec
    identity = package.identity
    stamp = get_date_string(context.now)
    details_uri = new_details_uri(context)

    json = create(details_uri, ["PackageDetails", "catalog:Permalink"])
    json["commitId"] = context.commit_id
    json["commitTimeStamp"] = stamp
    json["sleet:operation"] = SleetOperation.ADD.value
    json["id"] = identity.id
    json["version"] = identity.version.to_full_string()
    json["verbatimVersion"] = identity.version.original or identity.version.to_full_string()
    json["created"] = stamp
    json["lastEdited"] = stamp
    json["published"] = stamp

    for name in NUSPEC_STRING_PROPERTIES:
        json[name] = nuspec.get(name)

    json["isPrerelease"] = identity.version.is_prerelease
    json["licenseNames"] = ""
    json["licenseReportUrl"] = ""
    json["listed"] = True
    json["title"] = nuspec.get("title")
    json["packageHash"] = package.get_hash()
    json["packageHashAlgorithm"] = "SHA512"
    json["packageSize"] = package.get_size()
    json["requireLicenseAcceptance"] = nuspec.require_license_acceptance
    json["tags"] = nuspec.tags
    json["dependencyGroups"] = _dependency_groups(details_uri, package, context)
    json["frameworkAssemblyGroup"] = _framework_assembly_groups(details_uri, package)
    json["packageContent"] = nupkg_uri or package.nupkg_uri or ""
    json["packageEntries"] = [
        {
            "@id": f"{details_uri}#{entry.full_name}",
            "@type": "PackageEntry",
            "fullName": entry.full_name,
            "length": entry.length,
            "lastWriteTime": get_date_string(entry.last_write_time),
            "name": entry.full_name.rsplit("/", 1)[-1],
        }
        for entry in package.entries
    ]
    json["sleet:toolVersion"] = __version__
    json["@context"] = PACKAGE_DETAILS_CONTEXT
    return json


def create_delete_details(identity: PackageIdentity, reason: Optional[str], context: SleetContext) -> Dict[str, Any]:
    """Tombstone for a removed package."""
    stamp = get_date_string(context.now)
    json = create(new_details_uri(context), ["PackageDelete", "catalog:Permalink"])
    json["commitId"] = context.commit_id
    json["commitTimeStamp"] = stamp
    json["sleet:operation"] = SleetOperation.REMOVE.value
    json["id"] = identity.id
    json["version"] = identity.version.to_full_string()
    json["created"] = stamp
    json["sleet:removeReason"] = reason or ""
    json["sleet:toolVersion"] = __version__
    json["@context"] = PACKAGE_DETAILS_CONTEXT
    return json


def create_commit(details: Dict[str, Any]) -> Dict[str, Any]:
    """Catalog page item pointing at a details document."""
    is_add = details["sleet:operation"] == SleetOperation.ADD.value
    return {
        "@id": details["@id"],
        "@type": "nuget:PackageDetails" if is_add else "nuget:PackageDelete",
        "commitId": details["commitId"],
        "commitTimeStamp": details["commitTimeStamp"],
        "nuget:id": details["id"],
        "nuget:version": details["version"],
        "sleet:operation": details["sleet:operation"],
    }
