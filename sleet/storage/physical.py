"""
Feed stored in a directory on local disk.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import aiofiles

from sleet.storage.file_system import FeedFile, FeedFileSystem
from sleet.storage.local_cache import LocalCache
from sleet.storage.lock import LOCK_FILE_NAME, FeedLock, PhysicalFeedLock
from sleet.storage.retry import RetryPolicy

logger = logging.getLogger(__name__)


class PhysicalFile(FeedFile):
    file_system: "PhysicalFileSystem"

    @property
    def source_path(self) -> Path:
        return self.file_system.root_path / self.relative_path

    async def _copy_from_source(self) -> None:
        if not self.source_path.is_file():
            return
        async with aiofiles.open(self.source_path, "rb") as src:
            data = await src.read()
        self.local_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.local_path, "wb") as dst:
            await dst.write(data)

    async def _copy_to_source(self) -> None:
        target = self.source_path
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_name(target.name + ".tmp")
        async with aiofiles.open(self.local_path, "rb") as src:
            data = await src.read()
        async with aiofiles.open(tmp_path, "wb") as dst:
            await dst.write(data)
        tmp_path.replace(target)

    async def _remove_from_source(self) -> None:
        target = self.source_path
        target.unlink(missing_ok=True)
        self.file_system.remove_empty_parents(target.parent)


class PhysicalFileSystem(FeedFileSystem):
    """`type: local` feeds."""

    def __init__(
        self,
        local_cache: LocalCache,
        root_path: Path,
        base_uri: Optional[str] = None,
        fetch_policy: Optional[RetryPolicy] = None,
        push_policy: Optional[RetryPolicy] = None,
        lock_wait: float = 0.2,
    ):
        self.root_path = root_path.resolve()
        super().__init__(local_cache, self.root_path.as_uri(), base_uri, fetch_policy, push_policy)
        self.lock_wait = lock_wait

    def _create_file(self, relative_path: str, local_path: Path) -> FeedFile:
        return PhysicalFile(self, relative_path, local_path)

    def create_lock(self) -> FeedLock:
        return PhysicalFeedLock(self.root_path / LOCK_FILE_NAME, wait_between_attempts=self.lock_wait)

    def remove_empty_parents(self, directory: Path) -> None:
        """Remove empty directories between a deleted file and the feed root."""
        while directory != self.root_path and self.root_path in directory.parents:
            try:
                if any(directory.iterdir()):
                    return
                directory.rmdir()
            except OSError:
                return
            directory = directory.parent

    async def validate(self) -> bool:
        if self.root_path.is_dir():
            return True
        if self.root_path.parent.is_dir():
            self.root_path.mkdir(exist_ok=True)
            return True
        logger.error(f"Unable to find the parent directory of {self.root_path}")
        return False

    async def get_files(self) -> List[str]:
        if not self.root_path.is_dir():
            return []
        return sorted(
            p.relative_to(self.root_path).as_posix()
            for p in self.root_path.rglob("*")
            if p.is_file() and p.name != LOCK_FILE_NAME
        )

    async def destroy(self) -> bool:
        files = await self.get_files()
        logger.info(f"Deleting {len(files)} files from {self.root_path}")
        for relative in files:
            path = self.root_path / relative
            path.unlink(missing_ok=True)
            self.remove_empty_parents(path.parent)
        self.reset()
        return True
