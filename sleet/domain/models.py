"""
Pydantic models for sleet.

This module defines the typed documents and settings used throughout the
tool, including:
- Local settings (sleet.json) and source entries
- Feed settings stored on the feed (sleet.settings.json)
- Persisted index documents (package index, flat container, autocomplete)
- Parsed catalog entries, lock messages and command results

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from sleet.domain.versioning import PackageIdentity


# ---------------------------------------------------------------------------
# Local settings (sleet.json)
# ---------------------------------------------------------------------------


class SourceEntry(BaseModel):
    """
    One named feed in sleet.json.

    `type` selects the backend: "local" for a directory, "http" for a
    read-only feed served by any static host.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = Field(description="Name used with --source.")
    type: str = Field(default="local", description="Backend type: local or http.")
    path: Optional[str] = Field(default=None, description="Directory (local) or root URL (http) of the feed.")
    base_uri: Optional[str] = Field(
        default=None,
        alias="baseURI",
        description="Public URI written into feed documents. Defaults to the path.",
    )


class LocalConfig(BaseModel):
    """Tool behaviour shared by all sources."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    feed_lock_timeout_seconds: Optional[float] = Field(
        default=None,
        alias="feedLockTimeoutSeconds",
        description="How long to wait for the feed lock. None waits forever.",
    )
    feed_lock_message: Optional[str] = Field(
        default=None,
        alias="feedLockMessage",
        description="Message stored in the lock so other writers know who holds it.",
    )


class LocalSettings(BaseModel):
    """Parsed sleet.json / sleet.yaml."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    sources: List[SourceEntry] = Field(default_factory=list)
    config: LocalConfig = Field(default_factory=LocalConfig)
    path: Optional[str] = Field(
        default=None,
        exclude=True,
        description="Location of the settings file, used to resolve relative source paths.",
    )

    def find_source(self, name: str) -> Optional[SourceEntry]:
        for source in self.sources:
            if source.name.lower() == name.lower():
                return source
        return None


# ---------------------------------------------------------------------------
# Feed settings (sleet.settings.json)
# ---------------------------------------------------------------------------


def _get_bool(value: Optional[str], default: bool) -> bool:
    text = (value or "").strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    return default


def _get_int(value: Optional[str]) -> Optional[int]:
    try:
        return int((value or "").strip())
    except ValueError:
        return None


class FeedSettings(BaseModel):
    """
    Settings persisted on the feed itself.

    Stored as a list of key/value pairs so unknown keys written by other
    tool versions survive a round trip.
    """

    catalog_enabled: bool = Field(default=False, description="Write the catalog ledger.")
    catalog_page_size: int = Field(default=1024, ge=1, description="Commits per catalog page.")
    symbols_feed_enabled: bool = Field(default=False, description="Accept .symbols.nupkg packages.")
    retention_max_stable_versions: Optional[int] = Field(default=None)
    retention_max_prerelease_versions: Optional[int] = Field(default=None)
    badges_enabled: bool = Field(default=False, description="Write version badges for every id.")
    external_search: Optional[str] = Field(default=None, description="Search service written into index.json instead of the feed's own.")

    @classmethod
    def from_values(cls, values: Dict[str, str]) -> "FeedSettings":
        lowered = {k.lower(): v for k, v in values.items()}
        page_size = _get_int(lowered.get("catalogpagesize"))
        return cls(
            catalog_enabled=_get_bool(lowered.get("catalogenabled"), False),
            catalog_page_size=max(1, page_size if page_size is not None else 1024),
            symbols_feed_enabled=_get_bool(lowered.get("symbolsfeedenabled"), False),
            retention_max_stable_versions=_get_int(lowered.get("retentionmaxstableversions")),
            retention_max_prerelease_versions=_get_int(lowered.get("retentionmaxprereleaseversions")),
            badges_enabled=_get_bool(lowered.get("badgesenabled"), False),
            external_search=lowered.get("externalsearch") or None,
        )

    def to_values(self) -> Dict[str, str]:
        values = {
            "catalogenabled": str(self.catalog_enabled).lower(),
            "catalogpagesize": str(self.catalog_page_size),
            "symbolsfeedenabled": str(self.symbols_feed_enabled).lower(),
        }
        if self.retention_max_stable_versions is not None:
            values["retentionmaxstableversions"] = str(self.retention_max_stable_versions)
        if self.retention_max_prerelease_versions is not None:
            values["retentionmaxprereleaseversions"] = str(self.retention_max_prerelease_versions)
        if self.badges_enabled:
            values["badgesenabled"] = "true"
        if self.external_search:
            values["externalsearch"] = self.external_search
        return values


# ---------------------------------------------------------------------------
# Persisted documents
# ---------------------------------------------------------------------------


class PackageIndexDocument(BaseModel):
    """Shape of sleet.packageindex.json and symbolspackages/packageindex.json."""

    model_config = ConfigDict(populate_by_name=True)

    created: Optional[str] = None
    last_edited: Optional[str] = Field(default=None, alias="lastEdited")
    packages: Dict[str, List[str]] = Field(default_factory=dict)
    symbols: Dict[str, List[str]] = Field(default_factory=dict)


class FlatContainerIndex(BaseModel):
    """flatcontainer/{id}/index.json"""

    versions: List[str] = Field(default_factory=list)


class AutoCompleteDocument(BaseModel):
    """autocomplete/query"""

    model_config = ConfigDict(populate_by_name=True)

    context: Dict[str, Any] = Field(
        default_factory=lambda: {"@vocab": "http://schema.nuget.org/schema#"},
        alias="@context",
    )
    total_hits: int = Field(default=0, alias="totalHits")
    data: List[str] = Field(default_factory=list)


class LockMessage(BaseModel):
    """Contents of the feed lock, shown to writers waiting on it."""

    date: str
    message: str = ""
    pid: Optional[int] = None


# ---------------------------------------------------------------------------
# Parsed views
# ---------------------------------------------------------------------------


class SleetOperation(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class CatalogIndexEntry(BaseModel):
    """A catalog commit item, parsed from a catalog page."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    package: PackageIdentity
    commit_time: datetime
    operation: SleetOperation
    details_uri: str

    @property
    def id(self) -> str:
        return self.package.id


class FeedStats(BaseModel):
    """Result of the stats command."""

    catalog_entries: Optional[int] = Field(default=None, description="None when the catalog is disabled.")
    packages: int = 0
    unique_ids: int = 0
    symbols_packages: int = 0
