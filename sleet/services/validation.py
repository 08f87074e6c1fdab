"""
Cross-service consistency check.

The package index is the source of truth. Every service that can list its
packages is compared against it: Missing are packages the index has and the
service lacks, Extra the reverse.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from pydantic import BaseModel, ConfigDict, Field

from sleet.core.context import SleetContext
from sleet.domain.versioning import PackageIdentity
from sleet.services.autocomplete import expected_ids
from sleet.services.dispatch import ServiceDescriptor, get_services
from sleet.services.package_index import PackageIndex

logger = logging.getLogger(__name__)


class PackageDiff(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    missing: List[PackageIdentity] = Field(default_factory=list)
    extra: List[PackageIdentity] = Field(default_factory=list)

    @classmethod
    def compare(cls, expected: Iterable[PackageIdentity], actual: Iterable[PackageIdentity]) -> "PackageDiff":
        expected_set = set(expected)
        actual_set = set(actual)
        return cls(missing=sorted(expected_set - actual_set), extra=sorted(actual_set - expected_set))

    @property
    def has_errors(self) -> bool:
        return bool(self.missing or self.extra)

    def to_text(self) -> str:
        lines = []
        if self.missing:
            lines.append(f"Missing packages: {len(self.missing)}")
            lines.extend(f"  {p}" for p in self.missing)
        if self.extra:
            lines.append(f"Extra packages: {len(self.extra)}")
            lines.extend(f"  {p}" for p in self.extra)
        return "\n".join(lines)


class IdDiff(BaseModel):
    """Id-level diff for services that only list ids."""

    missing: List[str] = Field(default_factory=list)
    extra: List[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.missing or self.extra)

    def to_text(self) -> str:
        lines = []
        if self.missing:
            lines.append(f"Missing ids: {len(self.missing)}")
            lines.extend(f"  {i}" for i in self.missing)
        if self.extra:
            lines.append(f"Extra ids: {len(self.extra)}")
            lines.extend(f"  {i}" for i in self.extra)
        return "\n".join(lines)


async def _check_service(service: ServiceDescriptor, index: PackageIndex) -> str:
    sets = await index.get_package_sets()
    expected = sets.symbols if service.symbols else sets.packages

    if service.can_list_all:
        diff = PackageDiff.compare(expected.get_packages(), await service.list_all())
        return diff.to_text() if diff.has_errors else ""

    if service.can_list_by_id:
        actual = set()
        for package_id in expected.get_package_ids():
            actual |= await service.list_by_id(package_id)
        diff = PackageDiff.compare(expected.get_packages(), actual)
        return diff.to_text() if diff.has_errors else ""

    if service.list_ids is not None:
        wanted = {i.lower(): i for i in expected_ids(expected.get_package_ids())}
        found = {i.lower(): i for i in await service.list_ids()}
        id_diff = IdDiff(
            missing=[wanted[k] for k in sorted(wanted.keys() - found.keys())],
            extra=[found[k] for k in sorted(found.keys() - wanted.keys())],
        )
        return id_diff.to_text() if id_diff.has_errors else ""

    return ""


async def validate_feed(context: SleetContext) -> Dict[str, str]:
    """
    Compare every listable service against the package index.

    Returns service name -> diff text, an empty text means the service is
    consistent.
    """
    index = PackageIndex(context)
    results: Dict[str, str] = {}
    for service in get_services(context):
        if not (service.can_list_all or service.can_list_by_id or service.list_ids is not None):
            continue
        logger.info(f"Validating {service.name}")
        text = await _check_service(service, index)
        if text:
            logger.error(f"{service.name} is out of sync with the package index:\n{text}")
        results[service.name] = text

    if any(results.values()):
        logger.error("Feed invalid!")
    else:
        logger.info("Feed valid")
    return results
