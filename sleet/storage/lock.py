"""
Feed locks.

Only one writer may modify a feed at a time. A lock is obtained with a
message describing the holder, renewed in the background while held and
released (best effort) at the end of the command.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from sleet.domain.json_ld import get_date_string
from sleet.domain.models import LockMessage

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".lock"


class FeedLock(ABC):
    """
    Base lock with the wait/renew/release flow.

    Subclasses only implement the backend-specific primitives.
    """

    def __init__(self, wait_between_attempts: float = 0.2, renew_interval: float = 30.0, max_wait_between_attempts: float = 5.0):
        self.wait_between_attempts = wait_between_attempts
        self.max_wait_between_attempts = max(max_wait_between_attempts, wait_between_attempts)
        self.renew_interval = renew_interval
        self.is_locked = False
        self._renew_task: Optional[asyncio.Task] = None

    @abstractmethod
    async def _try_obtain(self, message: LockMessage) -> bool:
        """Attempt to take the lock once."""

    @abstractmethod
    async def _read_message(self) -> Optional[LockMessage]:
        """Who currently holds the lock, None if unknown."""

    @abstractmethod
    async def _release(self) -> None:
        ...

    async def _renew(self) -> None:
        pass

    @property
    def manual_unlock_hint(self) -> str:
        return "To manually unlock the feed remove the lock file."

    async def get_lock(self, timeout: Optional[float], message: str) -> bool:
        """
        Wait for the lock.

        Returns False once `timeout` seconds pass, None waits forever.
        """
        lock_message = LockMessage(date=get_date_string(datetime.now(timezone.utc)), message=message or "", pid=os.getpid())
        deadline = None if timeout is None else time.monotonic() + timeout
        delays = self.backoff_delays()
        logged_wait = False

        while True:
            if await self._try_obtain(lock_message):
                self.is_locked = True
                self._start_renewal()
                logger.debug(f"Obtained feed lock: {message}")
                return True

            if not logged_wait:
                current = await self._read_message()
                holder = current.message if current else "unknown"
                since = current.date if current else "unknown"
                logger.info(f"Waiting to obtain feed lock. Feed is locked by: {holder} since: {since}")
                logger.info(self.manual_unlock_hint)
                logged_wait = True

            delay = next(delays)
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                delay = min(delay, remaining)
            await self._wait(delay)

    def backoff_delays(self) -> Iterator[float]:
        """Delays between attempts, doubling up to max_wait_between_attempts."""
        delay = self.wait_between_attempts
        while True:
            yield delay
            delay = min(delay * 2, self.max_wait_between_attempts)

    async def _wait(self, delay: float) -> None:
        await asyncio.sleep(delay)

    def _start_renewal(self) -> None:
        if self.renew_interval > 0:
            self._renew_task = asyncio.create_task(self._renew_loop())

    async def _renew_loop(self) -> None:
        while True:
            await asyncio.sleep(self.renew_interval)
            try:
                await self._renew()
            except Exception as e:
                logger.warning(f"Failed to renew feed lock: {e}")

    async def release(self) -> None:
        """Stop renewal, then release. Failures are logged, the lease will expire."""
        if self._renew_task is not None:
            self._renew_task.cancel()
            try:
                await self._renew_task
            except asyncio.CancelledError:
                pass
            self._renew_task = None

        if not self.is_locked:
            return
        try:
            await self._release()
        except Exception as e:
            logger.warning(f"Unable to release feed lock: {e}")
        self.is_locked = False

    async def __aenter__(self) -> "FeedLock":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.release()


class PhysicalFeedLock(FeedLock):
    """Lock file on local disk, created exclusively so only one writer wins."""

    def __init__(
        self,
        path: Path,
        wait_between_attempts: float = 0.2,
        renew_interval: float = 30.0,
        release_timeout: float = 60.0,
        max_wait_between_attempts: float = 5.0,
    ):
        super().__init__(wait_between_attempts, renew_interval, max_wait_between_attempts)
        self.path = path
        self.release_timeout = release_timeout
        self._message: Optional[LockMessage] = None

    @property
    def manual_unlock_hint(self) -> str:
        return f"To manually unlock the feed delete {self.path}"

    async def _try_obtain(self, message: LockMessage) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(message.model_dump_json(indent=2, exclude_none=True))
        self._message = message
        return True

    async def _read_message(self) -> Optional[LockMessage]:
        try:
            return LockMessage(**json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError):
            return None

    async def _renew(self) -> None:
        # Touch the file so other processes can tell the holder is alive.
        os.utime(self.path, None)

    async def _release(self) -> None:
        deadline = time.monotonic() + self.release_timeout
        while True:
            try:
                self.path.unlink(missing_ok=True)
                return
            except OSError:
                if time.monotonic() >= deadline:
                    raise
                await asyncio.sleep(self.wait_between_attempts)


class NullFeedLock(FeedLock):
    """Lock for read-only backends, where there is nothing to protect."""

    def __init__(self):
        super().__init__(wait_between_attempts=0, renew_interval=0)

    async def _try_obtain(self, message: LockMessage) -> bool:
        return True

    async def _read_message(self) -> Optional[LockMessage]:
        return None

    async def _release(self) -> None:
        pass
