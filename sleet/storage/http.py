"""
Read-only feed served over HTTP.

Any static host works since the feed is plain files. Writes are rejected at
commit time, the lock is a no-op.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import aiofiles
import httpx

from sleet.core.errors import ReadOnlyFeedError
from sleet.storage.file_system import FeedFile, FeedFileSystem
from sleet.storage.local_cache import LocalCache
from sleet.storage.lock import FeedLock, NullFeedLock
from sleet.storage.retry import RetryPolicy

logger = logging.getLogger(__name__)


class HttpFile(FeedFile):
    file_system: "HttpFileSystem"

    async def _copy_from_source(self) -> None:
        client = self.file_system.client
        async with client.stream("GET", self.root_uri) as response:
            if response.status_code == 404:
                return
            response.raise_for_status()
            self.local_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.local_path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    await f.write(chunk)

    async def _copy_to_source(self) -> None:
        raise ReadOnlyFeedError(f"Cannot write {self.root_uri}, http feeds are read-only")

    async def _remove_from_source(self) -> None:
        raise ReadOnlyFeedError(f"Cannot delete {self.root_uri}, http feeds are read-only")


class HttpFileSystem(FeedFileSystem):
    """`type: http` feeds."""

    def __init__(
        self,
        local_cache: LocalCache,
        root: str,
        base_uri: Optional[str] = None,
        fetch_policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(local_cache, root, base_uri, fetch_policy, RetryPolicy(max_attempts=1, delay=0))
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(follow_redirects=True, timeout=60.0)

    def _create_file(self, relative_path: str, local_path: Path) -> FeedFile:
        return HttpFile(self, relative_path, local_path)

    def create_lock(self) -> FeedLock:
        return NullFeedLock()

    async def validate(self) -> bool:
        try:
            return await self.get("index.json").exists()
        except httpx.HTTPError as e:
            logger.error(f"Unable to reach {self.root}: {e}")
            return False

    async def commit(self) -> bool:
        if self.has_changes:
            raise ReadOnlyFeedError(f"{self.root} is a read-only http feed")
        return True

    async def destroy(self) -> bool:
        raise ReadOnlyFeedError(f"{self.root} is a read-only http feed")

    async def get_files(self) -> List[str]:
        # Static hosts cannot list directories.
        raise ReadOnlyFeedError(f"{self.root} cannot be listed over http")

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
