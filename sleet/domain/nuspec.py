"""
Read package metadata out of a .nuspec document.

Nuspec files come with several XML namespaces depending on the tool that
produced them, so elements are matched on their local name only.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from sleet.core.errors import DataIntegrityError
from sleet.domain.versioning import NuGetVersion, PackageIdentity

TEXT_PROPERTIES = (
    "title",
    "authors",
    "owners",
    "description",
    "summary",
    "releaseNotes",
    "copyright",
    "language",
    "tags",
    "iconUrl",
    "projectUrl",
    "licenseUrl",
    "minClientVersion",
)


class PackageDependency(BaseModel):
    id: str
    range: Optional[str] = None


class DependencyGroup(BaseModel):
    target_framework: Optional[str] = None
    dependencies: List[PackageDependency] = Field(default_factory=list)


class FrameworkAssembly(BaseModel):
    assembly_name: str
    target_framework: Optional[str] = None


class NuspecMetadata(BaseModel):
    """Everything the feed documents need from a nuspec."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    version: NuGetVersion
    properties: Dict[str, str] = Field(default_factory=dict)
    require_license_acceptance: bool = False
    dependency_groups: List[DependencyGroup] = Field(default_factory=list)
    framework_assemblies: List[FrameworkAssembly] = Field(default_factory=list)

    @property
    def identity(self) -> PackageIdentity:
        return PackageIdentity(self.id, self.version)

    def get(self, name: str, default: str = "") -> str:
        return self.properties.get(name, default)

    @property
    def tags(self) -> List[str]:
        return [t for t in self.get("tags").replace(",", " ").split() if t]


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def normalize_range(value: Optional[str]) -> Optional[str]:
    """A bare version means 'at least', written as `[1.0.0, )`."""
    if not value:
        return None
    text = value.strip()
    version = NuGetVersion.try_parse(text)
    if version is not None:
        return f"[{version.to_normalized_string()}, )"
    return text


def _read_dependencies(element: Optional[ET.Element]) -> List[DependencyGroup]:
    if element is None:
        return []

    def read(parent: ET.Element) -> List[PackageDependency]:
        return [
            PackageDependency(id=d.get("id", ""), range=normalize_range(d.get("version")))
            for d in _children(parent, "dependency")
            if d.get("id")
        ]

    groups = [
        DependencyGroup(target_framework=g.get("targetFramework") or None, dependencies=read(g))
        for g in _children(element, "group")
    ]
    loose = read(element)
    if loose:
        groups.insert(0, DependencyGroup(dependencies=loose))
    return groups


def parse_nuspec(content: bytes) -> NuspecMetadata:
    """Parse nuspec bytes, raises DataIntegrityError for anything unusable."""
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise DataIntegrityError(f"Invalid nuspec XML: {e}") from e

    metadata = _child(root, "metadata")
    if metadata is None:
        raise DataIntegrityError("Invalid nuspec, missing metadata element")

    id_node = _child(metadata, "id")
    package_id = (id_node.text or "").strip() if id_node is not None else ""
    version_node = _child(metadata, "version")
    version_text = (version_node.text or "").strip() if version_node is not None else ""
    if not package_id:
        raise DataIntegrityError("Invalid nuspec, missing id")
    version = NuGetVersion.try_parse(version_text)
    if version is None:
        raise DataIntegrityError(f"Invalid nuspec, bad version '{version_text}' for {package_id}")

    properties: Dict[str, str] = {}
    for name in TEXT_PROPERTIES:
        node = _child(metadata, name)
        if node is not None and node.text and node.text.strip():
            properties[name] = node.text.strip()

    accept = _child(metadata, "requireLicenseAcceptance")
    framework_assemblies = []
    fa_node = _child(metadata, "frameworkAssemblies")
    if fa_node is not None:
        framework_assemblies = [
            FrameworkAssembly(assembly_name=a.get("assemblyName", ""), target_framework=a.get("targetFramework") or None)
            for a in _children(fa_node, "frameworkAssembly")
            if a.get("assemblyName")
        ]

    return NuspecMetadata(
        id=package_id,
        version=version,
        properties=properties,
        require_license_acceptance=accept is not None and (accept.text or "").strip().lower() == "true",
        dependency_groups=_read_dependencies(_child(metadata, "dependencies")),
        framework_assemblies=framework_assemblies,
    )
