"""
download: copy every package of a feed into a local directory.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiofiles

from sleet.commands.source import verify_init_and_lock
from sleet.core.context import SleetContext
from sleet.core.errors import SleetError
from sleet.domain.models import LocalSettings
from sleet.domain.versioning import PackageIdentity
from sleet.services.flat_container import FlatContainer
from sleet.services.package_index import PackageIndex
from sleet.services.symbols import Symbols
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)

MAX_CONCURRENT_DOWNLOADS = 4


def get_output_path(output: Path, identity: PackageIdentity, is_symbols: bool) -> Path:
    package_id = identity.id.lower()
    version = identity.version.to_normalized_string().lower()
    extension = ".symbols.nupkg" if is_symbols else ".nupkg"
    return output / package_id / f"{package_id}.{version}{extension}"


async def download_packages(context: SleetContext, output: Path, ignore_errors: bool = False) -> bool:
    """Returns False if any package could not be downloaded and errors were ignored."""
    sets = await PackageIndex(context).get_package_sets()
    flat_container = FlatContainer(context)
    symbols = Symbols(context)
    semaphore = asyncio.Semaphore(MAX_CONCURRENT_DOWNLOADS)
    failures = []

    async def download(identity: PackageIdentity, is_symbols: bool) -> None:
        async with semaphore:
            target = get_output_path(output, identity, is_symbols)
            try:
                if is_symbols:
                    data = await symbols.read_nupkg(identity)
                else:
                    data = await flat_container.read_nupkg(identity)
            except SleetError as e:
                if not ignore_errors:
                    raise
                logger.error(f"Unable to download {identity}: {e}")
                failures.append(identity)
                return
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(data)
            logger.info(f"Downloaded {identity} to {target}")

    jobs = [download(p, False) for p in sets.packages]
    jobs += [download(p, True) for p in sets.symbols]
    logger.info(f"Downloading {len(jobs)} packages to {output}")
    await asyncio.gather(*jobs)
    return not failures


async def run_download(settings: LocalSettings, file_system: FeedFileSystem, output: Path, ignore_errors: bool = False) -> bool:
    async with verify_init_and_lock(settings, file_system, "Download") as context:
        return await download_packages(context, output, ignore_errors)
