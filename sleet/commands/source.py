"""
Shared steps of every command: check the feed, take the lock, build the context.
"""
from __future__ import annotations

import getpass
import logging
import socket
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sleet.core.context import SleetContext
from sleet.core.errors import FeedLockError, FeedNotInitializedError
from sleet.domain import feed_paths
from sleet.domain.models import LocalSettings
from sleet.services.feed_settings import get_settings_or_default
from sleet.storage.file_system import FeedFileSystem

logger = logging.getLogger(__name__)


def default_lock_message(action: str) -> str:
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    return f"sleet {action} - {user}@{socket.gethostname()}"


async def verify_initialized(file_system: FeedFileSystem) -> None:
    if not await file_system.validate():
        raise FeedNotInitializedError(f"Unable to use {file_system.base_uri}, the feed location does not exist.")
    if not await file_system.get(feed_paths.SERVICE_INDEX).exists():
        raise FeedNotInitializedError(f"{file_system.base_uri} is not initialized. Run init first.")


@asynccontextmanager
async def feed_lock(settings: LocalSettings, file_system: FeedFileSystem, action: str) -> AsyncIterator[None]:
    """Hold the feed lock for the body, released even when the body fails."""
    lock = file_system.create_lock()
    message = settings.config.feed_lock_message or default_lock_message(action)
    if not await lock.get_lock(settings.config.feed_lock_timeout_seconds, message):
        raise FeedLockError("Unable to obtain a lock on the feed. Try again later.")
    try:
        yield
    finally:
        await lock.release()


@asynccontextmanager
async def verify_init_and_lock(settings: LocalSettings, file_system: FeedFileSystem, action: str) -> AsyncIterator[SleetContext]:
    """Check init, take the lock and yield a context with the feed settings loaded."""
    await verify_initialized(file_system)
    async with feed_lock(settings, file_system, action):
        # The lock holder may have changed the feed, start from a clean cache.
        file_system.reset()
        yield await create_context(settings, file_system)


async def create_context(settings: LocalSettings, file_system: FeedFileSystem, feed_settings=None) -> SleetContext:
    if feed_settings is None:
        feed_settings = await get_settings_or_default(file_system)
    return SleetContext.create(file_system, feed_settings, settings)
