"""
Shared fixtures for sleet tests.

Feeds are created under tmp_path with a PhysicalFileSystem and zero-delay
retry policies. Packages are synthetic nupkg zips holding a nuspec and one
library file.
"""
import json
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from sleet.commands.init import run_init
from sleet.commands.source import create_context
from sleet.core.context import SleetContext
from sleet.domain.models import FeedSettings, LocalConfig, LocalSettings, SourceEntry
from sleet.storage.local_cache import LocalCache
from sleet.storage.physical import PhysicalFileSystem
from sleet.storage.retry import RetryPolicy

BASE_URI = "https://example.com/feed/"

NUSPEC_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd">
  <metadata>
    <id>{id}</id>
    <version>{version}</version>
    <authors>{authors}</authors>
    <description>{description}</description>
    <tags>{tags}</tags>
    <dependencies>{dependencies}</dependencies>
  </metadata>
</package>
"""


def build_nuspec(
    package_id: str,
    version: str,
    authors: str = "sleet-tests",
    description: Optional[str] = None,
    tags: str = "test",
    dependencies: Optional[List[Tuple[str, str]]] = None,
) -> str:
    deps = "".join(f'<dependency id="{d}" version="{v}" />' for d, v in dependencies or [])
    return NUSPEC_TEMPLATE.format(
        id=package_id,
        version=version,
        authors=authors,
        description=description or f"{package_id} {version}",
        tags=tags,
        dependencies=deps,
    )


def build_nupkg(
    directory: Path,
    package_id: str,
    version: str,
    symbols: bool = False,
    nuspec_name: Optional[str] = None,
    **nuspec_args: Any,
) -> Path:
    """Write a nupkg to directory and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    extension = ".symbols.nupkg" if symbols else ".nupkg"
    path = directory / f"{package_id}.{version}{extension}"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(nuspec_name or f"{package_id}.nuspec", build_nuspec(package_id, version, **nuspec_args))
        zf.writestr("lib/net45/a.dll", b"library")
        if symbols:
            zf.writestr("lib/net45/a.pdb", b"symbols")
    return path


def read_feed_json(feed_root: Path, relative_path: str) -> Dict[str, Any]:
    return json.loads((feed_root / relative_path).read_text(encoding="utf-8"))


@pytest.fixture
def local_cache(tmp_path):
    cache = LocalCache(tmp_path / "cache")
    yield cache
    cache.close()


@pytest.fixture
def feed_root(tmp_path) -> Path:
    return tmp_path / "feed"


@pytest.fixture
def packages_dir(tmp_path) -> Path:
    path = tmp_path / "packages"
    path.mkdir()
    return path


@pytest.fixture
def file_system(local_cache, feed_root) -> PhysicalFileSystem:
    return PhysicalFileSystem(
        local_cache,
        feed_root,
        BASE_URI,
        fetch_policy=RetryPolicy.no_delay(2),
        push_policy=RetryPolicy.no_delay(2),
        lock_wait=0.01,
    )


@pytest.fixture
def settings(feed_root) -> LocalSettings:
    return LocalSettings(
        sources=[SourceEntry(name="feed", type="local", path=str(feed_root), base_uri=BASE_URI)],
        config=LocalConfig(feed_lock_timeout_seconds=5),
    )


@pytest_asyncio.fixture
async def feed(settings, file_system) -> PhysicalFileSystem:
    """An initialized feed with default settings."""
    await run_init(settings, file_system)
    return file_system


@pytest_asyncio.fixture
async def catalog_feed(settings, file_system) -> PhysicalFileSystem:
    """An initialized feed with the catalog enabled."""
    await run_init(settings, file_system, FeedSettings(catalog_enabled=True))
    return file_system


@pytest_asyncio.fixture
async def symbols_feed(settings, file_system) -> PhysicalFileSystem:
    """An initialized feed accepting symbols packages."""
    await run_init(settings, file_system, FeedSettings(catalog_enabled=True, symbols_feed_enabled=True))
    return file_system


async def fresh_context(settings: LocalSettings, file_system: PhysicalFileSystem) -> SleetContext:
    """Context reading the committed feed from disk."""
    file_system.reset()
    return await create_context(settings, file_system)
