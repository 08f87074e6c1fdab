"""
File abstraction shared by every feed backend.

A FeedFile is a handle on one logical feed file. Reads pull the remote
content into the local cache once, writes and deletes only touch the cache
and mark the file dirty. FeedFileSystem.commit() pushes dirty files to the
backing store.
"""
from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from sleet.core.errors import FileNotFoundInFeedError
from sleet.domain.json_ld import format_json, strip_nulls
from sleet.storage.local_cache import LocalCache
from sleet.storage.lock import FeedLock
from sleet.storage.retry import DEFAULT_FETCH_POLICY, DEFAULT_PUSH_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

COMMIT_CONCURRENCY = 4


def ensure_trailing_slash(uri: str) -> str:
    return uri if uri.endswith("/") else uri + "/"


def file_priority(relative_path: str) -> int:
    """Blobs are pushed before the indexes that point at them."""
    name = relative_path.lower().rsplit("/", 1)[-1]
    if name.endswith(".nupkg"):
        return 1
    if name.endswith(".nuspec"):
        return 2
    if name == "index.json":
        return 7
    if name == "query":
        return 8
    return 5


class FeedFile(ABC):
    """Base implementation of a cached feed file."""

    def __init__(self, file_system: "FeedFileSystem", relative_path: str, local_path: Path):
        self.file_system = file_system
        self.relative_path = relative_path
        self.local_path = local_path
        self.has_changes = False
        self._is_downloaded = False
        self._lock = asyncio.Lock()

    @property
    def entity_uri(self) -> str:
        """Public uri of the file, as written into feed documents."""
        return self.file_system.get_entity_uri(self.relative_path)

    @property
    def root_uri(self) -> str:
        """Location of the file in the backing store."""
        return self.file_system.get_root_uri(self.relative_path)

    # -- backend hooks -------------------------------------------------------

    @abstractmethod
    async def _copy_from_source(self) -> None:
        """Download the remote file into local_path, leave it absent if missing."""

    @abstractmethod
    async def _copy_to_source(self) -> None:
        """Upload local_path to the backing store."""

    @abstractmethod
    async def _remove_from_source(self) -> None:
        """Delete the remote file if it exists."""

    # -- reads ---------------------------------------------------------------

    async def _ensure_file(self) -> None:
        async with self._lock:
            if self._is_downloaded:
                return
            if self.local_path.exists():
                self.local_path.unlink()
            await self.file_system.fetch_policy.run(self._copy_from_source, f"GET {self.root_uri}")
            self._is_downloaded = True

    async def exists(self) -> bool:
        await self._ensure_file()
        return self.local_path.exists()

    async def read_bytes(self) -> bytes:
        await self._ensure_file()
        if not self.local_path.exists():
            raise FileNotFoundInFeedError(self.entity_uri)
        async with aiofiles.open(self.local_path, "rb") as f:
            return await f.read()

    async def get_json(self) -> Dict[str, Any]:
        """Read the file as a JSON object, raises if it does not exist."""
        data = await self.read_bytes()
        return json.loads(data.decode("utf-8-sig"))

    async def get_json_or_none(self) -> Optional[Dict[str, Any]]:
        if not await self.exists():
            return None
        return await self.get_json()

    # -- writes --------------------------------------------------------------

    async def write_bytes(self, data: bytes) -> None:
        async with self._lock:
            self.local_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.local_path, "wb") as f:
                await f.write(data)
            self._is_downloaded = True
            self.has_changes = True

    async def write_json(self, json_value: Dict[str, Any]) -> None:
        text = json.dumps(format_json(strip_nulls(json_value)), indent=2, ensure_ascii=False)
        await self.write_bytes(text.encode("utf-8"))

    async def write_file(self, source: Path) -> None:
        async with aiofiles.open(source, "rb") as f:
            data = await f.read()
        await self.write_bytes(data)

    async def delete(self) -> None:
        async with self._lock:
            if self.local_path.exists():
                self.local_path.unlink()
            self._is_downloaded = True
            self.has_changes = True

    async def push(self) -> None:
        """Send a dirty file to the backing store."""
        if not self.has_changes:
            return
        if self.local_path.exists():
            logger.debug(f"Pushing {self.root_uri}")
            await self.file_system.push_policy.run(self._copy_to_source, f"PUT {self.root_uri}")
        else:
            logger.debug(f"Removing {self.root_uri}")
            await self.file_system.push_policy.run(self._remove_from_source, f"DELETE {self.root_uri}")
        self.has_changes = False

    def invalidate(self) -> None:
        """Forget the cached copy so the next read hits the backing store."""
        if self.local_path.exists():
            self.local_path.unlink()
        self._is_downloaded = False
        self.has_changes = False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.relative_path})"


class FeedFileSystem(ABC):
    """
    A feed backend.

    `root` locates files in the backing store, `base_uri` is what clients
    see and what gets written into documents. They differ when the feed is
    hosted somewhere other than where it is written.
    """

    def __init__(
        self,
        local_cache: LocalCache,
        root: str,
        base_uri: Optional[str] = None,
        fetch_policy: Optional[RetryPolicy] = None,
        push_policy: Optional[RetryPolicy] = None,
    ):
        self.local_cache = local_cache
        self.root = ensure_trailing_slash(root)
        self.base_uri = ensure_trailing_slash(base_uri or root)
        self.fetch_policy = fetch_policy or DEFAULT_FETCH_POLICY
        self.push_policy = push_policy or DEFAULT_PUSH_POLICY
        self._files: Dict[str, FeedFile] = {}

    @staticmethod
    def normalize_path(path: str) -> str:
        return path.replace("\\", "/").lstrip("/")

    def get_entity_uri(self, relative_path: str) -> str:
        return self.base_uri + self.normalize_path(relative_path)

    def get_root_uri(self, relative_path: str) -> str:
        return self.root + self.normalize_path(relative_path)

    def get_relative_path(self, uri: str) -> str:
        """Map an entity or root uri back to a feed-relative path."""
        for prefix in (self.base_uri, self.root):
            if uri.lower().startswith(prefix.lower()):
                return uri[len(prefix):]
        raise ValueError(f"{uri} does not belong to feed {self.base_uri}")

    def get(self, path: str) -> FeedFile:
        """Return the cached handle for a path, creating it on first use."""
        relative = self.normalize_path(path)
        key = relative.lower()
        handle = self._files.get(key)
        if handle is None:
            handle = self._create_file(relative, self.local_cache.get_new_temp_path())
            self._files[key] = handle
        return handle

    def get_by_uri(self, uri: str) -> FeedFile:
        return self.get(self.get_relative_path(uri))

    @property
    def has_changes(self) -> bool:
        return any(f.has_changes for f in self._files.values())

    def get_dirty_files(self) -> List[FeedFile]:
        dirty = [f for f in self._files.values() if f.has_changes]
        return sorted(dirty, key=lambda f: (file_priority(f.relative_path), f.relative_path))

    async def commit(self) -> bool:
        """Push every dirty file with bounded concurrency."""
        dirty = self.get_dirty_files()
        if not dirty:
            logger.debug("No changes to commit")
            return True

        logger.info(f"Committing {len(dirty)} files to {self.base_uri}")
        semaphore = asyncio.Semaphore(COMMIT_CONCURRENCY)

        async def push(handle: FeedFile) -> None:
            async with semaphore:
                await handle.push()

        # Priority groups go out in order so indexes never point at missing blobs.
        for priority in sorted({file_priority(f.relative_path) for f in dirty}):
            group = [f for f in dirty if file_priority(f.relative_path) == priority]
            await asyncio.gather(*(push(f) for f in group))
        return True

    def reset(self) -> None:
        """Drop all cached handles."""
        for handle in self._files.values():
            handle.invalidate()
        self._files.clear()

    @abstractmethod
    def _create_file(self, relative_path: str, local_path: Path) -> FeedFile:
        ...

    @abstractmethod
    def create_lock(self) -> FeedLock:
        ...

    @abstractmethod
    async def validate(self) -> bool:
        """True if the backend is reachable and its container exists."""

    @abstractmethod
    async def destroy(self) -> bool:
        """Delete every feed file except the lock."""

    @abstractmethod
    async def get_files(self) -> List[str]:
        """Relative paths of every file currently in the backing store."""

    async def close(self) -> None:
        pass
