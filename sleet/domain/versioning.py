"""
Package versions and identities.

NuGet versions are SemVer 2.0 with an optional fourth (revision) part and
legacy single-label prereleases such as `1.0.0-beta1`. Ids compare
case-insensitively everywhere in the feed.
"""
from __future__ import annotations

import re
from functools import total_ordering
from typing import Optional, Tuple

_VERSION_RE = re.compile(
    r"^(?P<core>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<release>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<metadata>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


def _label_key(label: str) -> tuple:
    # Numeric labels sort before alphanumeric ones.
    if label.isdigit():
        return (0, int(label), "")
    return (1, 0, label.lower())


@total_ordering
class NuGetVersion:
    """A parsed package version. Build metadata is ignored for equality and ordering."""

    __slots__ = ("major", "minor", "patch", "revision", "release_labels", "metadata", "original")

    def __init__(
        self,
        major: int,
        minor: int = 0,
        patch: int = 0,
        revision: int = 0,
        release_labels: Tuple[str, ...] = (),
        metadata: Optional[str] = None,
        original: Optional[str] = None,
    ):
        self.major = major
        self.minor = minor
        self.patch = patch
        self.revision = revision
        self.release_labels = tuple(release_labels)
        self.metadata = metadata or None
        self.original = original

    @classmethod
    def parse(cls, value: str) -> "NuGetVersion":
        text = (value or "").strip()
        match = _VERSION_RE.match(text)
        if not match:
            raise ValueError(f"'{value}' is not a valid version string")

        parts = [int(p) for p in match.group("core").split(".")]
        parts += [0] * (4 - len(parts))
        release = match.group("release")
        labels = tuple(release.split(".")) if release else ()
        return cls(parts[0], parts[1], parts[2], parts[3], labels, match.group("metadata"), text)

    @classmethod
    def try_parse(cls, value: Optional[str]) -> Optional["NuGetVersion"]:
        try:
            return cls.parse(value or "")
        except ValueError:
            return None

    @property
    def is_prerelease(self) -> bool:
        return bool(self.release_labels)

    @property
    def release(self) -> str:
        return ".".join(self.release_labels)

    def to_normalized_string(self) -> str:
        """Version without metadata, revision only when non-zero: `1.0.0-beta`."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text += f".{self.revision}"
        if self.release_labels:
            text += f"-{self.release}"
        return text

    def to_full_string(self) -> str:
        """Normalized version plus build metadata: `1.0.0-beta+sha`."""
        text = self.to_normalized_string()
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    def _sort_key(self) -> tuple:
        return (
            self.major,
            self.minor,
            self.patch,
            self.revision,
            0 if self.release_labels else 1,
            tuple(_label_key(label) for label in self.release_labels),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._sort_key() == other._sort_key()

    def __lt__(self, other: "NuGetVersion") -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __hash__(self) -> int:
        return hash(self._sort_key())

    def __str__(self) -> str:
        return self.to_normalized_string()

    def __repr__(self) -> str:
        return f"NuGetVersion('{self.to_full_string()}')"


@total_ordering
class PackageIdentity:
    """
    The universal key of the feed: (id, version).

    Equality and ordering are case-insensitive on the id, then by version.
    """

    __slots__ = ("id", "version")

    def __init__(self, package_id: str, version: NuGetVersion | str):
        if not package_id:
            raise ValueError("Package id must not be empty")
        self.id = package_id
        self.version = version if isinstance(version, NuGetVersion) else NuGetVersion.parse(version)

    def _key(self) -> tuple:
        return (self.id.lower(), self.version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "PackageIdentity") -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return f"{self.id} {self.version.to_normalized_string()}"

    def __repr__(self) -> str:
        return f"PackageIdentity('{self.id}', '{self.version.to_full_string()}')"
