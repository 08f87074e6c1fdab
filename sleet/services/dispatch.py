"""
Fan-out of one SleetOperations batch to every service of the feed.

Each service is described by a ServiceDescriptor saying what it can list,
which the validator uses to compare it against the package index.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from pydantic import BaseModel, ConfigDict

from sleet.core.context import SleetContext
from sleet.domain import feed_paths
from sleet.domain.versioning import PackageIdentity
from sleet.services.autocomplete import AutoComplete
from sleet.services.badges import Badges
from sleet.services.catalog import Catalog
from sleet.services.catalog_details import create_package_details
from sleet.services.flat_container import FlatContainer
from sleet.services.operations import SleetOperations
from sleet.services.package_index import PackageIndex
from sleet.services.registrations import Registrations
from sleet.services.search import Search
from sleet.services.symbols import Symbols

logger = logging.getLogger(__name__)


class ServiceDescriptor(BaseModel):
    """A derived service and the lookups it supports."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    apply: Callable[[SleetOperations], Awaitable[None]]
    list_all: Optional[Callable[[], Awaitable[Set[PackageIdentity]]]] = None
    list_by_id: Optional[Callable[[str], Awaitable[Set[PackageIdentity]]]] = None
    list_ids: Optional[Callable[[], Awaitable[List[str]]]] = None
    symbols: bool = False

    @property
    def can_list_all(self) -> bool:
        return self.list_all is not None

    @property
    def can_list_by_id(self) -> bool:
        return self.list_by_id is not None


def get_services(context: SleetContext) -> List[ServiceDescriptor]:
    """
    Services in the order they are applied.

    Search reads the registration blobs written earlier in the same batch,
    the package index is saved last.
    """
    settings = context.feed_settings
    services: List[ServiceDescriptor] = []

    flat_container = FlatContainer(context)
    services.append(ServiceDescriptor(name=flat_container.name, apply=flat_container.apply_operations, list_by_id=flat_container.get_packages_by_id))

    if settings.catalog_enabled:
        catalog = Catalog(context)
        services.append(ServiceDescriptor(name=catalog.name, apply=catalog.apply_operations, list_all=catalog.get_packages))

    registrations = Registrations(context)
    services.append(ServiceDescriptor(name=registrations.name, apply=registrations.apply_operations, list_by_id=registrations.get_packages_by_id))

    autocomplete = AutoComplete(context)
    services.append(ServiceDescriptor(name=autocomplete.name, apply=autocomplete.apply_operations, list_ids=autocomplete.get_package_ids))

    search = Search(context)
    services.append(ServiceDescriptor(name=search.name, apply=search.apply_operations, list_all=search.get_packages))

    if settings.badges_enabled:
        badges = Badges(context)
        services.append(ServiceDescriptor(name=badges.name, apply=badges.apply_operations))

    if settings.symbols_feed_enabled:
        symbols = Symbols(context)
        services.append(ServiceDescriptor(name=symbols.name, apply=symbols.apply_operations, list_all=symbols.get_packages, symbols=True))

    package_index = PackageIndex(context)
    services.append(ServiceDescriptor(name=package_index.name, apply=package_index.apply_operations))
    return services


async def prepare_packages(context: SleetContext, operations: SleetOperations) -> None:
    """Assign nupkg uris and build the details documents for every add."""

    async def prepare(package) -> None:
        if package.is_symbols_package:
            path = feed_paths.symbols_nupkg(package.identity)
        else:
            path = feed_paths.flat_container_nupkg(package.identity)
        package.nupkg_uri = context.file_system.get_entity_uri(path)
        if package.package_details is None:
            # Hashing reads the whole nupkg.
            package.package_details = await asyncio.to_thread(create_package_details, package, context, package.nupkg_uri)

    await asyncio.gather(*(prepare(p) for p in operations.to_add))


async def apply_package_changes(context: SleetContext, operations: SleetOperations) -> None:
    """Run a batch through every service. Nothing is pushed until commit."""
    for package in operations.to_remove:
        logger.info(f"Removing {package}")
    for package in operations.to_add:
        logger.info(f"Adding {package}")

    await prepare_packages(context, operations)

    for service in get_services(context):
        logger.debug(f"Updating {service.name}")
        await service.apply(operations)
