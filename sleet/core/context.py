"""
Request-scoped state shared by the services of one command.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from sleet.domain.models import FeedSettings, LocalSettings
from sleet.storage.file_system import FeedFileSystem


class SleetContext(BaseModel):
    """
    Immutable context built once per command invocation.

    Every document written during the command shares `commit_id` and `now`.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    file_system: FeedFileSystem
    local_settings: LocalSettings = Field(default_factory=LocalSettings)
    feed_settings: FeedSettings = Field(default_factory=FeedSettings)
    commit_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    now: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, file_system: FeedFileSystem, feed_settings: FeedSettings | None = None, local_settings: LocalSettings | None = None) -> "SleetContext":
        return cls(
            file_system=file_system,
            feed_settings=feed_settings or FeedSettings(),
            local_settings=local_settings or LocalSettings(),
        )
