from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx

from sleet.core.errors import ConfigurationError
from sleet.domain.models import LocalSettings, SourceEntry
from sleet.storage.file_system import FeedFileSystem
from sleet.storage.http import HttpFileSystem
from sleet.storage.local_cache import LocalCache
from sleet.storage.physical import PhysicalFileSystem
from sleet.storage.retry import RetryPolicy


def resolve_local_path(settings: LocalSettings, source: SourceEntry) -> Path:
    if source.path is None:
        raise ConfigurationError(f"Missing path for source '{source.name}'.", config_file=settings.path)
    path = Path(source.path or ".").expanduser()
    if path.is_absolute():
        return path
    if settings.path is None:
        raise ConfigurationError("Cannot use a relative 'path' without a sleet.json file.")
    return (Path(settings.path).parent / path).resolve()


def create_file_system(
    settings: LocalSettings,
    source: SourceEntry,
    cache: LocalCache,
    fetch_policy: Optional[RetryPolicy] = None,
    push_policy: Optional[RetryPolicy] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> FeedFileSystem:
    source_type = (source.type or "").lower()
    if source_type == "local":
        root = resolve_local_path(settings, source)
        return PhysicalFileSystem(cache, root, source.base_uri, fetch_policy, push_policy)
    if source_type == "http":
        if not source.path:
            raise ConfigurationError(f"Missing path for source '{source.name}'.", config_file=settings.path)
        return HttpFileSystem(cache, source.path, source.base_uri, fetch_policy, client)
    raise ConfigurationError(f"Unsupported source type '{source.type}' for source '{source.name}'.", config_file=settings.path)
